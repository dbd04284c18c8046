"""Tests du registre des paiements et des allocations"""

from commerce_api import db
from commerce_api.models import Order, Payment, Invoice, PaymentAllocation
from tests.factories import make_order, make_payment, make_invoice


def allocate(client, order_number, *payment_ids):
    return client.post('/api/v1/payments_v2/allocate', json={
        'orderNumber': order_number, 'paymentIds': list(payment_ids)
    })


# ============================================================================
# Saisie
# ============================================================================


def test_create_payment(client):
    response = client.post('/api/v1/payments_v2/create', json={
        'customer_id': 'cust-1',
        'payment': {'method': 'eft', 'amount_incl': '150.5', 'reference': 'EFT-1'},
        'proof': {'type': 'pdf', 'url': 'https://files.example/eft-1.pdf'}
    })

    assert response.status_code == 201
    payment = response.get_json()['data']['payment']['payment']
    assert payment['amount_incl'] == 150.5
    assert payment['remaining_amount_incl'] == 150.5
    assert payment['status'] == 'unallocated'
    assert payment['currency'] == 'ZAR'


def test_create_rejects_unknown_method(client):
    response = client.post('/api/v1/payments_v2/create', json={
        'customerId': 'cust-1', 'payment': {'method': 'cheque', 'amount_incl': 10}
    })

    assert response.status_code == 400
    assert response.get_json()['title'] == 'Invalid Method'


def test_create_rejects_non_positive_amount(client):
    response = client.post('/api/v1/payments_v2/create', json={
        'customerId': 'cust-1', 'payment': {'method': 'cash', 'amount_incl': 0}
    })

    assert response.status_code == 400
    assert response.get_json()['title'] == 'Invalid Amount'


def test_sub_cent_amount_is_rejected(client):
    created = client.post('/api/v1/payments_v2/create', json={
        'customerId': 'cust-1', 'payment': {'method': 'cash', 'amount_incl': 0.001}
    })

    assert created.status_code == 400
    assert created.get_json()['title'] == 'Invalid Amount'
    assert Payment.query.count() == 0

    payment = make_payment(amount=25)
    updated = client.post('/api/v1/payments_v2/update', json={
        'paymentId': payment.id, 'payment': {'amount_incl': '0.004'}
    })

    assert updated.status_code == 400
    assert db.session.get(Payment, payment.id).amount_incl == 25


def test_list_filters_open_payments(client):
    make_payment(amount=50)
    spent = make_payment(amount=20)
    spent.status = 'allocated'
    spent.remaining_amount_incl = 0
    db.session.commit()

    data = client.post('/api/v1/payments_v2/get', json={
        'customerId': 'cust-1', 'status': 'unallocated_or_partial'
    }).get_json()['data']

    assert len(data['payments']) == 1
    assert data['payments'][0]['payment_index'] == 1
    assert data['totals']['totalPayments'] == 1
    assert data['pagination']['totalPages'] == 1


# ============================================================================
# Allocation
# ============================================================================


def test_allocate_across_payments(client):
    order = make_order(final_incl=120.0)
    first = make_payment(amount=100)
    second = make_payment(amount=50)

    response = allocate(client, 'ORD-1', first.id, second.id)

    data = response.get_json()['data']
    assert response.status_code == 200
    assert data['allocated_total_incl'] == 120
    assert data['remaining_due_incl'] == 0
    assert data['payment_status'] == 'paid'
    assert [a['status'] for a in data['allocations']] == ['allocated', 'partially_allocated']

    second = db.session.get(Payment, second.id)
    assert second.remaining_amount_incl == 30
    assert second.remaining_amount_incl == second.amount_incl - second.allocated_incl

    order = db.session.get(Order, order.id)
    assert order.paid_amount_incl == 120
    assert [p['amount_incl'] for p in order.manual_payments] == [100, 20]


def test_allocate_skips_foreign_and_empty_payments(client):
    make_order(final_incl=50.0)
    foreign = make_payment(customer_id='someone-else', amount=50)
    dollars = make_payment(amount=50, currency='USD')

    data = allocate(client, 'ORD-1', foreign.id, dollars.id, 'missing').get_json()['data']

    assert [a['status'] for a in data['allocations']] == ['customer_mismatch', 'currency_mismatch', 'not_found']
    assert data['allocated_total_incl'] == 0
    assert data['payment_status'] == 'unpaid'


def test_allocate_on_paid_order(client):
    make_order(final_incl=40.0, paid_amount_incl=40.0, payment_status='paid')
    payment = make_payment(amount=10)

    data = allocate(client, 'ORD-1', payment.id).get_json()['data']

    assert data['status'] == 'already_paid'
    assert PaymentAllocation.query.count() == 0


def test_allocate_to_cancelled_order_is_refused(client):
    make_order(status='cancelled')
    payment = make_payment()

    response = allocate(client, 'ORD-1', payment.id)

    assert response.status_code == 409
    assert response.get_json()['title'] == 'Invalid Order State'


def test_allocate_requires_payment_ids(client):
    make_order()

    response = allocate(client, 'ORD-1')

    assert response.status_code == 400
    assert response.get_json()['message'] == 'paymentIds must be a non-empty array.'


def test_allocation_marks_invoice_paid(client):
    order = make_order(final_incl=80.0)
    make_invoice('inv_1_x', order_id=order.id, final_total=80)
    order.invoice_id = 'inv_1_x'
    db.session.commit()
    payment = make_payment(amount=80)

    allocate(client, 'ORD-1', payment.id)

    assert db.session.get(Invoice, 'inv_1_x').payment_status == 'Paid'


def test_preview_does_not_write(client):
    make_order(final_incl=100.0)
    payment = make_payment(amount=60)

    data = client.post('/api/v1/payments_v2/allocate-preview', json={
        'orderNumber': 'ORD-1', 'paymentIds': [payment.id, payment.id]
    }).get_json()['data']

    assert data['selected_payments_total_incl'] == 60
    assert data['additional_needed_incl'] == 40
    assert data['can_cover'] is False
    assert len(data['payments']) == 1
    assert db.session.get(Payment, payment.id).remaining_amount_incl == 60
    assert PaymentAllocation.query.count() == 0


# ============================================================================
# Mise à jour / suppression
# ============================================================================


def test_update_below_allocated_amount_is_refused(client):
    make_order(final_incl=70.0)
    payment = make_payment(amount=100)
    allocate(client, 'ORD-1', payment.id)

    response = client.post('/api/v1/payments_v2/update', json={
        'paymentId': payment.id, 'payment': {'amount_incl': 50}
    })

    assert response.status_code == 400
    assert response.get_json()['message'] == 'payment.amount_incl cannot be less than allocated amount.'
    payment = db.session.get(Payment, payment.id)
    assert payment.amount_incl == 100
    assert payment.remaining_amount_incl == 30


def test_update_recomputes_remaining_and_status(client):
    make_order(final_incl=70.0)
    payment = make_payment(amount=100)
    allocate(client, 'ORD-1', payment.id)

    response = client.post('/api/v1/payments_v2/update', json={
        'paymentId': payment.id, 'payment': {'amount_incl': 70, 'note': 'corrected'}
    })

    assert response.get_json()['data'] == {'paymentId': payment.id, 'updated': True}
    payment = db.session.get(Payment, payment.id)
    assert payment.remaining_amount_incl == 0
    assert payment.status == 'allocated'
    assert payment.note == 'corrected'


def test_delete_reverses_allocations(client):
    order = make_order(final_incl=100.0)
    kept = make_payment(amount=40)
    removed = make_payment(amount=60)
    allocate(client, 'ORD-1', kept.id, removed.id)

    response = client.post('/api/v1/payments_v2/delete', json={'payment_id': removed.id})

    assert response.get_json()['data'] == {'paymentId': removed.id, 'deleted': True}
    order = db.session.get(Order, order.id)
    assert order.paid_amount_incl == 40
    assert order.payment_status == 'partial'
    assert [p['paymentId'] for p in order.manual_payments] == [kept.id]
    assert db.session.get(Payment, removed.id) is None
    assert PaymentAllocation.query.count() == 1


def test_delete_unknown_payment(client):
    response = client.post('/api/v1/payments_v2/delete', json={'paymentId': 'missing'})

    assert response.status_code == 404
    assert response.get_json()['title'] == 'Payment Not Found'


# ============================================================================
# Consultation (route historique)
# ============================================================================


def test_payment_allocations_lookup(client):
    order = make_order(final_incl=50.0)
    make_invoice('inv_7_x', order_id=order.id, final_total=50, invoice_pdf_url='https://files.example/inv.pdf')
    order.invoice_id = 'inv_7_x'
    db.session.commit()
    payment = make_payment(amount=50)
    allocate(client, 'ORD-1', payment.id)

    response = client.get(f'/api/accounting/payments/paymentAllocations?paymentId={payment.id}')

    body = response.get_json()
    assert response.status_code == 200
    assert body['message'] == 'Allocations retrieved successfully'
    assert len(body['appliedTo']) == 1
    entry = body['appliedTo'][0]
    assert entry['invoiceId'] == 'inv_7_x'
    assert entry['amount'] == 50
    assert entry['invoiceTotal'] == 50
    assert entry['invoicePDFURL'] == 'https://files.example/inv.pdf'


def test_payment_allocations_requires_id(client):
    response = client.get('/api/accounting/payments/paymentAllocations')

    assert response.status_code == 400
    assert response.get_json() == {'error': 'paymentId is required'}
