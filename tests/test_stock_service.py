"""Tests du client de réservation de stock"""

from unittest import mock

import pytest
import requests

from commerce_api.services.stock_service import StockReservationService, StockServiceError, StockCall


def make_service(status=200, error=None):
    session = mock.Mock()
    if error is not None:
        session.post.side_effect = error
    else:
        session.post.return_value = mock.Mock(ok=status < 400, status_code=status, text='unavailable')
    return StockReservationService('http://stock.test/sale/', timeout=3, session=session), session


def test_reserve_posts_payload():
    service, session = make_service()

    call = service.reserve('P1', 'V1', 2)

    assert call == StockCall('reserve', 'P1', 'V1', 2)
    session.post.assert_called_once_with(
        'http://stock.test/sale/reserve',
        json={'unique_id': 'P1', 'variant_id': 'V1', 'qty': 2},
        timeout=3
    )


def test_zero_quantity_makes_no_call():
    service, session = make_service()

    assert service.release('P1', 'V1', 0) is None
    session.post.assert_not_called()


def test_rejected_call_raises():
    service, _ = make_service(status=503)

    with pytest.raises(StockServiceError) as exc_info:
        service.release('P1', 'V1', 1)

    assert exc_info.value.status_code == 503
    assert exc_info.value.action == 'release'


def test_network_error_raises_without_retry():
    service, session = make_service(error=requests.ConnectionError('refused'))

    with pytest.raises(StockServiceError):
        service.reserve('P1', 'V1', 1)

    assert session.post.call_count == 1
