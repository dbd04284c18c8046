"""
Éligibilité à la livraison en 50 minutes

Fonction pure: panier normalisé + adresse + heure locale -> raisons d'échec.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any

from commerce_api.utils.errors import ValidationError
from commerce_api.utils.helpers import to_float


ALLOWED_CITIES = ('paarl', 'franschhoek', 'stellenbosch', 'wellington')
CUTOFF_HOUR = 16

INSUFFICIENT_STOCK = 'INSUFFICIENT_STOCK_FOR_FAST_DELIVERY'
OUTSIDE_ZONE = 'OUTSIDE_DELIVERY_ZONE'
AFTER_CUTOFF = 'AFTER_CUTOFF_TIME'


def extract_items(cart) -> Optional[List[Dict[str, Any]]]:
    """
    Accepte trois formes:
    - liste de lignes
    - réponse de l'API panier {data: {cart: {items}}}
    - document panier brut {items}
    """
    if isinstance(cart, list):
        return cart
    if not isinstance(cart, dict):
        return None

    nested = ((cart.get('data') or {}).get('cart') or {}).get('items')
    if isinstance(nested, list):
        return nested

    if isinstance(cart.get('items'), list):
        return cart['items']

    return None


def item_in_stock(item: Dict[str, Any]) -> bool:
    """Sans inventaire suivi, une ligne n'est pas éligible"""
    if not isinstance(item, dict):
        return False
    variant = item.get('selected_variant_snapshot') or item.get('selected_variant') or {}
    inventory = variant.get('inventory') if isinstance(variant, dict) else None

    if not isinstance(inventory, list) or not inventory:
        return False

    return all(to_float((entry or {}).get('qty_available'), 0) > 0 for entry in inventory)


def city_allowed(address) -> bool:
    city = (address or {}).get('city') if isinstance(address, dict) else None
    if not city or not isinstance(city, str):
        return False
    return city.strip().lower() in ALLOWED_CITIES


def evaluate(cart, address, now: datetime) -> Dict[str, Any]:
    """
    Args:
        cart: Panier sous l'une des formes acceptées
        address: Adresse de livraison ({city, ...})
        now: Heure locale d'évaluation

    Returns:
        dict: {eligible, reasons, cutoffHour, evaluatedAt}
    """
    items = extract_items(cart)
    if items is None:
        raise ValidationError("A valid cart object is required.", title="Invalid Cart")

    reasons = []
    if not all(item_in_stock(item) for item in items):
        reasons.append(INSUFFICIENT_STOCK)
    if not city_allowed(address):
        reasons.append(OUTSIDE_ZONE)
    if now.hour >= CUTOFF_HOUR:
        reasons.append(AFTER_CUTOFF)

    return {
        'eligible': not reasons,
        'reasons': reasons,
        'cutoffHour': CUTOFF_HOUR,
        'evaluatedAt': now.isoformat()
    }
