"""
Routes v1 - Commandes
Cycle de vie: annulation, suppression, statut et facturation
"""

from commerce_api.routes.v1 import v1_bp
from commerce_api.services.order_service import OrderService
from commerce_api.utils.aliases import request_body, OrderReference
from commerce_api.utils.decorators import v1_endpoint
from commerce_api.utils.responses import ok


def _is_true(value):
    return value is True or str(value).strip().lower() == 'true'


@v1_bp.route('/orders/get', methods=['POST'])
@v1_endpoint('Fetch Order Failed')
def get_order():
    """Body: {orderId | orderNumber | merchantTransactionId}"""
    data = request_body()
    return ok(OrderService.get_order(OrderReference.from_body(data)))


@v1_bp.route('/orders/get-editable', methods=['POST'])
@v1_endpoint('Fetch Editable Orders Failed', 'Unexpected error fetching editable orders.')
def get_editable_orders():
    """
    Numéros des commandes encore modifiables

    Body: {customerId}
    """
    data = request_body()
    return ok(OrderService.get_editable(data.get('customerId')))


@v1_bp.route('/orders/cancel', methods=['POST'])
@v1_endpoint('Cancel Failed', 'Unexpected error cancelling order.')
def cancel_order():
    """
    Annule une commande (idempotent)

    Body: {orderId | orderNumber | merchantTransactionId, reason}
    """
    data = request_body()
    return ok(OrderService.cancel(OrderReference.from_body(data), data.get('reason')))


@v1_bp.route('/orders/delete', methods=['POST'])
@v1_endpoint('Delete Failed', 'Unexpected error deleting order.')
def delete_order():
    """
    Supprime une commande; une commande payée exige force=true

    Body: {orderId | orderNumber | merchantTransactionId, force}
    """
    data = request_body()
    return ok(OrderService.delete(OrderReference.from_body(data), force=_is_true(data.get('force'))))


@v1_bp.route('/orders/status/update', methods=['POST'])
@v1_endpoint('Update Failed', 'Unexpected error updating order status.')
def update_order_status():
    """
    Body: {orderId | orderNumber | merchantTransactionId, status, reason}
    """
    data = request_body()
    result = OrderService.update_status(
        OrderReference.from_body(data),
        data.get('status'),
        data.get('reason')
    )
    return ok(result)


@v1_bp.route('/orders/create-invoice', methods=['POST'])
@v1_endpoint('Server Error')
def create_invoice():
    """
    Émet la facture d'une commande (une seule fois)

    Body: {orderId, generatedBy}
    """
    data = request_body()
    return ok(OrderService.create_invoice(data.get('orderId'), data.get('generatedBy') or 'system'))
