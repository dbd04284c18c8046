"""
Routes v1 - Paniers
Réservations de stock promotionnel et éligibilité livraison 50 minutes
"""

from datetime import datetime
from zoneinfo import ZoneInfo

from flask import current_app
from commerce_api.routes.v1 import v1_bp
from commerce_api.services.cart_service import CartService
from commerce_api.services import fast_delivery
from commerce_api.utils.aliases import request_body
from commerce_api.utils.decorators import v1_endpoint
from commerce_api.utils.responses import ok


def _cart_service():
    return CartService(
        current_app.extensions['stock_service'],
        current_app.extensions['catalogue_service']
    )


def local_now():
    """Heure locale: LOCAL_TIMEZONE si configuré, sinon heure du serveur"""
    zone = current_app.config.get('LOCAL_TIMEZONE')
    if zone:
        return datetime.now(ZoneInfo(zone))
    return datetime.now()


@v1_bp.route('/carts/get', methods=['POST'])
@v1_endpoint('Cart Retrieval Failed', 'Unexpected server error.')
def get_cart():
    """
    Panier de l'utilisateur, réconcilié avec le catalogue
    (panier vide si inexistant)

    Body: {uid}
    """
    data = request_body()
    return ok(_cart_service().get_cart(data.get('uid')))


@v1_bp.route('/carts/update', methods=['POST'])
@v1_endpoint('Cart Update Failed')
def update_cart():
    """
    Ajout / mise à jour d'une ligne

    Body: {uid, product, variant_id, mode: set|change, qty}
    """
    data = request_body()
    result = _cart_service().update_item(
        data.get('uid'),
        data.get('product'),
        data.get('variant_id'),
        data.get('mode'),
        data.get('qty')
    )
    return ok(result)


@v1_bp.route('/carts/removeItem', methods=['POST'])
@v1_endpoint('Remove Failed')
def remove_cart_item():
    """
    Retrait d'une ligne; le stock promotionnel est libéré avant le retrait

    Body: {uid, unique_id, variant_id}
    """
    data = request_body()
    return ok(_cart_service().remove_item(data.get('uid'), data.get('unique_id'), data.get('variant_id')))


@v1_bp.route('/carts/delete', methods=['POST'])
@v1_endpoint('Delete Failed', 'Unexpected server error.')
def delete_cart():
    """Body: {uid}"""
    data = request_body()
    return ok(_cart_service().delete_cart(data.get('uid')))


@v1_bp.route('/carts/reclaimReservations', methods=['GET'])
@v1_endpoint('Reclaim Failed')
def reclaim_reservations():
    """Récupère les paniers actifs de plus de 12 heures"""
    return ok(_cart_service().reclaim_stale())


@v1_bp.route('/carts/check-50min-eligibility', methods=['POST'])
@v1_endpoint('Eligibility Check Failed', 'Unable to determine 50-minute delivery eligibility.')
def check_fast_delivery():
    """
    Body: {cart, deliveryAddress}

    cart: liste de lignes, réponse de /carts/get ou document panier
    """
    data = request_body()
    return ok(fast_delivery.evaluate(data.get('cart'), data.get('deliveryAddress'), local_now()))
