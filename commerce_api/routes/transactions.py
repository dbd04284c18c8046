"""
Routes Transactions
Création des transactions initiales (numéro marchand à 8 chiffres)
"""

from flask import Blueprint
from commerce_api import limiter
from commerce_api.services.transaction_service import TransactionService
from commerce_api.utils.aliases import request_body
from commerce_api.utils.decorators import legacy_endpoint
from commerce_api.utils.responses import legacy_ok

transactions_bp = Blueprint('transactions', __name__)


@transactions_bp.route('/createTransaction', methods=['POST'])
@limiter.limit("30 per minute")
@legacy_endpoint('Unknown error')
def create_transaction():
    """Body: {orderNumber, companyCode}"""
    data = request_body()
    transaction = TransactionService.create(
        order_number=data.get('orderNumber'),
        company_code=data.get('companyCode')
    )
    return legacy_ok("Init transaction created", 201, transaction=transaction)
