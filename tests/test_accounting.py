"""Tests des rapports comptables et du recalcul du total final"""

from datetime import date

from commerce_api import db
from commerce_api.models import Expense
from commerce_api.services.accounting_service import AccountingService
from tests.factories import make_user, make_customer, make_invoice, make_order


# ============================================================================
# Contrôle de crédit
# ============================================================================


def test_credit_check_over_limit(client):
    make_user(credit_limit=1000)
    make_invoice('inv_1', 'ORD-1', final_total=500)
    make_invoice('inv_2', 'ORD-2', final_total=300)
    make_invoice('inv_3', 'ORD-3', final_total=900, payment_status='Paid')

    response = client.post('/api/creditCheck', json={'company_code': 'ACME', 'cartValue': 300})

    body = response.get_json()
    assert response.status_code == 200
    assert body['message'] == 'Pending invoices retrieved'
    assert sorted(i['orderNumber'] for i in body['invoices']) == ['ORD-1', 'ORD-2']
    assert body['outstanding'] == 800
    assert body['creditLimit'] == 1000
    assert body['remainingCredit'] == 200
    assert body['canCheckout'] is False
    assert body['overBy'] == 100
    assert body['cartValue'] == 300


def test_credit_check_falls_back_to_customer_record(client):
    make_customer('BETA', credit_limit=500)

    body = client.post('/api/creditCheck', json={'companyCode': 'BETA'}).get_json()

    assert body['creditLimit'] == 500
    assert body['canCheckout'] is True
    assert body['overBy'] == 0
    assert 'cartValue' not in body


def test_credit_check_unknown_company(client):
    response = client.post('/api/creditCheck', json={'companyCode': 'NOPE'})

    assert response.status_code == 404
    assert response.get_json() == {'error': 'Customer / User record not found'}


def test_credit_check_requires_company(client):
    response = client.post('/api/creditCheck', json={})

    assert response.status_code == 400
    assert response.get_json()['error'] == 'companyCode is required'


# ============================================================================
# Compte de résultat
# ============================================================================


def test_profit_and_loss(client):
    make_invoice('inv_1', final_total=1000, invoice_date=date(2024, 3, 5))
    make_invoice('inv_2', final_total=400, invoice_date=date(2024, 3, 20), payment_status='Cancelled')
    make_invoice('inv_3', final_total=250, invoice_date=date(2024, 4, 2))
    db.session.add_all([
        Expense(account_code='6100', category='Fuel', amount=120, date=date(2024, 3, 10)),
        Expense(account_code='6100', category='Fuel', amount=80, date=date(2024, 3, 11)),
        Expense(category='Rent', amount=300, date=date(2024, 3, 1)),
        Expense(category='Rent', amount=999, date=date(2024, 3, 2), deleted=True),
    ])
    db.session.commit()

    response = client.post('/api/accounting/pnl', json={'fromDate': '2024-03-01', 'toDate': '2024-03-31'})

    body = response.get_json()
    assert response.status_code == 200
    assert body['message'] == 'P&L report generated successfully'
    assert body['scope'] == 'Global'
    assert body['totalIncome'] == 1000
    assert body['totalExpenses'] == 500
    assert body['netProfit'] == 500
    assert {g['category']: g['total'] for g in body['expensesByCategory']} == {'Fuel': 200, 'Rent': 300}


def test_profit_and_loss_for_company(client):
    make_invoice('inv_1', company_code='ACME', final_total=100, invoice_date=date(2024, 3, 5))
    make_invoice('inv_2', company_code='BETA', final_total=700, invoice_date=date(2024, 3, 5))

    body = client.post('/api/accounting/pnl', json={'companyCode': 'BETA'}).get_json()

    assert body['scope'] == 'Company: BETA'
    assert body['totalIncome'] == 700


# ============================================================================
# Total final
# ============================================================================


def test_final_total_cash_with_returnables():
    result = AccountingService.final_total(100, 'cash', 10)

    assert result == {
        'originalTotal': '100.00',
        'subtotalBeforeVAT': '85.00',
        'returnablesDeducted': '10.00',
        'newSubtotalExclVAT': '75.00',
        'recalculatedVAT': '11.25',
        'yocoFee': '0.00',
        'finalTotal': '86.25',
        'paymentMethod': 'cash'
    }


def test_final_total_card_fee():
    result = AccountingService.final_total('100', 'card', 10)

    assert result['yocoFee'] == '3.04'
    assert result['finalTotal'] == '89.29'


def test_calc_final_total_route(client):
    response = client.post('/api/calcFinalTotal', json={'order_total': 200})

    body = response.get_json()
    assert response.status_code == 200
    assert body['finalTotal'] == '195.50'
    assert body['paymentMethod'] == 'N/A'


def test_calc_final_total_reads_order(client):
    make_order('ORD-55', final_incl=100.0)

    body = client.post('/api/calcFinalTotal', json={
        'orderNumber': 'ORD-55', 'paymentMethod': 'cash', 'returnablesTotal': 10
    }).get_json()

    assert body['finalTotal'] == '86.25'


def test_calc_final_total_missing_total(client):
    response = client.post('/api/calcFinalTotal', json={'cardOrCash': 'card'})

    assert response.status_code == 400
    assert response.get_json() == {'error': 'Missing orderTotal'}
