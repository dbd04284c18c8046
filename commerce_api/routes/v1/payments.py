"""
Routes v1 - Paiements
Saisie des paiements manuels et allocation aux commandes
"""

from commerce_api.routes.v1 import v1_bp
from commerce_api.services.payment_service import PaymentService, UNSET
from commerce_api.utils.aliases import request_body
from commerce_api.utils.decorators import v1_endpoint
from commerce_api.utils.responses import ok


@v1_bp.route('/payments_v2/create', methods=['POST'])
@v1_endpoint('Create Payment Failed', 'Unexpected error creating payment.')
def create_payment():
    """
    Body: {customerId, customerCode, payment: {method, amount_incl, currency,
           reference, note}, proof: {type, url}, createdBy}
    """
    data = request_body()
    result = PaymentService.create(
        data.get('customerId'),
        data.get('payment') or {},
        customer_code=data.get('customerCode'),
        proof=data.get('proof'),
        created_by=data.get('createdBy')
    )
    return ok(result, 201)


@v1_bp.route('/payments_v2/update', methods=['POST'])
@v1_endpoint('Update Payment Failed', 'Unexpected error updating payment.')
def update_payment():
    """Body: {paymentId, payment, proof}"""
    data = request_body()
    result = PaymentService.update(
        data.get('paymentId'),
        data.get('payment') or {},
        proof=data['proof'] if 'proof' in data else UNSET
    )
    return ok(result)


@v1_bp.route('/payments_v2/get', methods=['POST'])
@v1_endpoint('Fetch Payments Failed', 'Unexpected error fetching payments.')
def get_payments():
    """
    Body: {customerId, status, page}

    status: unallocated | partially_allocated | allocated | unallocated_or_partial
    """
    data = request_body()
    return ok(PaymentService.list_for_customer(data.get('customerId'), data.get('status'), data.get('page')))


@v1_bp.route('/payments_v2/delete', methods=['POST'])
@v1_endpoint('Delete Payment Failed', 'Unexpected error deleting payment.')
def delete_payment():
    """Body: {paymentId}"""
    data = request_body()
    return ok(PaymentService.delete(data.get('paymentId')))


@v1_bp.route('/payments_v2/allocate', methods=['POST'])
@v1_endpoint('Allocation Failed', 'Unexpected error allocating payments.')
def allocate_payments():
    """Body: {orderNumber, paymentIds: [...]}"""
    data = request_body()
    return ok(PaymentService.allocate(data.get('orderNumber'), data.get('paymentIds')))


@v1_bp.route('/payments_v2/allocate-preview', methods=['POST'])
@v1_endpoint('Allocation Preview Failed', 'Unexpected error previewing allocation.')
def preview_allocation():
    """Body: {orderNumber, paymentIds: [...]}"""
    data = request_body()
    return ok(PaymentService.preview(data.get('orderNumber'), data.get('paymentIds')))
