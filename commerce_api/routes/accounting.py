"""
Routes Comptabilité (historiques)
P&L et allocations d'un paiement
"""

from flask import Blueprint, request
from commerce_api.services.accounting_service import AccountingService
from commerce_api.services.payment_service import PaymentService
from commerce_api.utils.aliases import request_body, normalize
from commerce_api.utils.decorators import legacy_endpoint
from commerce_api.utils.responses import legacy_ok, legacy_err

accounting_bp = Blueprint('accounting', __name__)


@accounting_bp.route('/pnl', methods=['POST'])
@legacy_endpoint('Failed to generate P&L report')
def profit_and_loss():
    """
    Compte de résultat

    Body: {fromDate, toDate, companyCode}
    """
    data = request_body()
    result = AccountingService.profit_and_loss(
        data.get('fromDate'),
        data.get('toDate'),
        data.get('companyCode')
    )
    return legacy_ok("P&L report generated successfully", **result)


@accounting_bp.route('/payments/paymentAllocations', methods=['GET'])
@legacy_endpoint('Failed to fetch allocations')
def payment_allocations():
    """
    Allocations d'un paiement avec les métadonnées de facture

    Query: paymentId
    """
    data = normalize(request.args.to_dict())
    payment_id = data.get('paymentId')
    if not payment_id:
        return legacy_err("paymentId is required", 400)

    applied_to = PaymentService.allocations_for(payment_id)
    return legacy_ok("Allocations retrieved successfully", appliedTo=applied_to)
