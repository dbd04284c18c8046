"""Tests des transactions initiales"""

from unittest import mock

import pytest
from sqlalchemy.exc import OperationalError

from commerce_api import db
from commerce_api.models import InitTransaction
from commerce_api.services import transaction_service
from commerce_api.services.transaction_service import (
    TransactionService, TransactionCreationError, MAX_ATTEMPTS
)


def numbers(*values):
    return iter(values).__next__


def test_generated_numbers_have_eight_digits():
    for _ in range(50):
        number = transaction_service.generate_transaction_number()
        assert len(number) == 8
        assert number.isdigit()


def test_collision_draws_a_new_number(app):
    db.session.add(InitTransaction(transaction_number='11111111'))
    db.session.commit()

    result = TransactionService.create('ORD-1', 'ACME', number_factory=numbers('11111111', '22222222'))

    assert result['transactionNumber'] == '22222222'
    assert result['paymentStatus'] == 'Pending'
    assert result['orderNumber'] == 'ORD-1'
    assert InitTransaction.query.count() == 2


def test_gives_up_after_max_attempts(app):
    db.session.add(InitTransaction(transaction_number='11111111'))
    db.session.commit()
    factory = mock.Mock(return_value='11111111')

    with pytest.raises(TransactionCreationError):
        TransactionService.create('ORD-1', 'ACME', number_factory=factory)

    assert factory.call_count == MAX_ATTEMPTS
    assert InitTransaction.query.count() == 1


def test_other_database_errors_are_not_retried(app):
    factory = mock.Mock(return_value='33333333')
    failure = OperationalError('SELECT init_transactions', {}, Exception('disk I/O error'))

    with mock.patch.object(InitTransaction, 'query') as query:
        query.filter_by.return_value.first.side_effect = failure
        with pytest.raises(OperationalError):
            TransactionService.create('ORD-1', 'ACME', number_factory=factory)

    assert factory.call_count == 1
    assert query.filter_by.call_count == 1
    assert InitTransaction.query.count() == 0


def test_create_transaction_route(client):
    with mock.patch.object(transaction_service.random, 'randint', return_value=12345678):
        response = client.post('/api/transactions/createTransaction', json={
            'order_number': 'ORD-9', 'companyCode': 'ACME'
        })

    body = response.get_json()
    assert response.status_code == 201
    assert body['message'] == 'Init transaction created'
    assert body['transaction']['transactionNumber'] == '12345678'
    assert body['transaction']['companyCode'] == 'ACME'
