"""
Routes Checkout (historiques)
Contrôle de crédit et recalcul du total final
Enveloppe: {message | error, ...}
"""

from flask import Blueprint, jsonify
from commerce_api.services.accounting_service import AccountingService
from commerce_api.services.order_service import OrderService
from commerce_api.utils.aliases import request_body, OrderReference
from commerce_api.utils.decorators import legacy_endpoint
from commerce_api.utils.responses import legacy_ok

checkout_bp = Blueprint('checkout', __name__)


@checkout_bp.route('/creditCheck', methods=['POST'])
@legacy_endpoint('Failed to retrieve pending invoices')
def credit_check():
    """
    Factures en attente et capacité de checkout d'une entreprise

    Body: {companyCode, cartValue}
    """
    data = request_body()
    result = AccountingService.credit_check(data.get('companyCode'), data.get('cartValue'))
    return legacy_ok("Pending invoices retrieved", **result)


@checkout_bp.route('/calcFinalTotal', methods=['POST'])
@legacy_endpoint('Something went wrong')
def calc_final_total():
    """
    Recalcul TVA / consignes / frais carte

    Body: {orderTotal | orderId | orderNumber, cardOrCash, returnableTotal}
    """
    data = request_body()
    order_total = data.get('orderTotal')

    # Total lu depuis la commande si seule une référence est fournie
    reference = OrderReference.from_body(data)
    if order_total is None and not reference.is_empty:
        order = OrderService.resolve(reference)
        order_total = (order.totals or {}).get('final_incl')

    result = AccountingService.final_total(
        order_total,
        data.get('cardOrCash'),
        data.get('returnableTotal')
    )
    return jsonify(result), 200
