"""
Normalisation des corps de requête
==================================

Les clients historiques envoient le même champ sous plusieurs noms
(uid / userId, orderId / order_id...). La table ALIASES fait
correspondre chaque nom canonique à la liste des noms acceptés, dans
l'ordre de priorité. Les routes normalisent le corps une seule fois,
puis ne lisent que les noms canoniques.
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any
from flask import request


ALIASES = {
    'uid': ('uid', 'userId', 'user_id'),
    'customerId': ('customerId', 'customer_id'),
    'companyCode': ('companyCode', 'company_code'),
    'orderId': ('orderId', 'order_id'),
    'orderNumber': ('orderNumber', 'order_number'),
    'merchantTransactionId': ('merchantTransactionId', 'merchant_transaction_id'),
    'paymentId': ('paymentId', 'payment_id'),
    'paymentIds': ('paymentIds', 'payment_ids'),
    'unique_id': ('unique_id', 'uniqueId', 'product_unique_id'),
    'variant_id': ('variant_id', 'variantId', 'selected_variant_id'),
    'locationId': ('locationId', 'location_id'),
    'generatedBy': ('generatedBy', 'generated_by'),
    'deliveryAddress': ('deliveryAddress', 'delivery_address'),
    'cartValue': ('cartValue', 'cart_value'),
    'orderTotal': ('orderTotal', 'order_total'),
    'cardOrCash': ('cardOrCash', 'paymentMethod'),
    'returnableTotal': ('returnableTotal', 'returnablesTotal', 'returnable_total'),
    'fromDate': ('fromDate', 'from_date'),
    'toDate': ('toDate', 'to_date'),
}


def is_blank(value) -> bool:
    """None ou chaîne vide"""
    return value is None or (isinstance(value, str) and not value.strip())


def normalize(body: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Retourne une copie du corps où chaque nom canonique porte la
    première valeur non vide trouvée parmi ses alias.
    """
    data = dict(body) if isinstance(body, dict) else {}
    for canonical, names in ALIASES.items():
        for name in names:
            value = data.get(name)
            if not is_blank(value):
                data[canonical] = value.strip() if isinstance(value, str) else value
                break
        else:
            data.pop(canonical, None)
    return data


def request_body() -> Dict[str, Any]:
    """Corps JSON de la requête courante, normalisé"""
    return normalize(request.get_json(silent=True))


@dataclass(frozen=True)
class OrderReference:
    """
    Référence de commande: orderId prioritaire, puis orderNumber,
    puis merchantTransactionId
    """
    order_id: Optional[str] = None
    order_number: Optional[str] = None
    merchant_transaction_id: Optional[str] = None

    @classmethod
    def from_body(cls, data: Dict[str, Any]) -> 'OrderReference':
        def _str(value):
            return None if is_blank(value) else str(value)

        return cls(
            order_id=_str(data.get('orderId')),
            order_number=_str(data.get('orderNumber')),
            merchant_transaction_id=_str(data.get('merchantTransactionId'))
        )

    @property
    def is_empty(self) -> bool:
        return not (self.order_id or self.order_number or self.merchant_transaction_id)
