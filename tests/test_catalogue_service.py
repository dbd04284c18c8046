"""Tests du client catalogue"""

from unittest import mock

import pytest
import requests

from commerce_api.services.catalogue_service import CatalogueService, CatalogueServiceError


def make_service(status=200, body=None, error=None):
    session = mock.Mock()
    if error is not None:
        session.get.side_effect = error
    else:
        response = mock.Mock(ok=status < 400, status_code=status)
        response.json.return_value = body
        session.get.return_value = response
    return CatalogueService('http://catalogue.test/products/', timeout=4, session=session), session


def test_get_product_returns_data():
    product = {'product': {'unique_id': 'P1'}, 'variants': []}
    service, session = make_service(body={'ok': True, 'data': product})

    assert service.get_product('P1') == product
    session.get.assert_called_once_with(
        'http://catalogue.test/products/product/get',
        params={'id': 'P1'},
        timeout=4
    )


def test_error_status_raises():
    service, _ = make_service(status=404)

    with pytest.raises(CatalogueServiceError):
        service.get_product('P1')


def test_not_ok_body_raises_with_message():
    service, _ = make_service(body={'ok': False, 'message': 'Product not found'})

    with pytest.raises(CatalogueServiceError) as exc_info:
        service.get_product('P1')

    assert exc_info.value.reason == 'Product not found'


def test_network_error_raises():
    service, session = make_service(error=requests.Timeout('timed out'))

    with pytest.raises(CatalogueServiceError):
        service.get_product('P1')

    assert session.get.call_count == 1
