"""Tests de l'éligibilité à la livraison en 50 minutes"""

from datetime import datetime

import pytest

from commerce_api.services import fast_delivery
from commerce_api.utils.errors import ValidationError


MORNING = datetime(2024, 5, 2, 10, 30)
CUTOFF = datetime(2024, 5, 2, 16, 0)


def stocked_item(*quantities):
    return {'selected_variant': {'inventory': [{'qty_available': q} for q in quantities]}}


def test_eligible_cart():
    result = fast_delivery.evaluate([stocked_item(4, 2)], {'city': ' Stellenbosch '}, MORNING)

    assert result == {
        'eligible': True,
        'reasons': [],
        'cutoffHour': 16,
        'evaluatedAt': MORNING.isoformat()
    }


def test_every_reason_is_reported():
    cart = {'items': [stocked_item(3), {'selected_variant': {}}]}

    result = fast_delivery.evaluate(cart, {'city': 'Cape Town'}, CUTOFF)

    assert result['eligible'] is False
    assert result['reasons'] == [
        fast_delivery.INSUFFICIENT_STOCK,
        fast_delivery.OUTSIDE_ZONE,
        fast_delivery.AFTER_CUTOFF
    ]


def test_zero_inventory_entry_is_insufficient():
    result = fast_delivery.evaluate([stocked_item(5, 0)], {'city': 'Paarl'}, MORNING)

    assert result['reasons'] == [fast_delivery.INSUFFICIENT_STOCK]


def test_snapshot_variant_takes_precedence():
    item = {
        'selected_variant_snapshot': {'inventory': [{'qty_available': 1}]},
        'selected_variant': {'inventory': []}
    }

    assert fast_delivery.item_in_stock(item) is True


def test_api_response_shape_is_accepted():
    cart = {'data': {'cart': {'items': [stocked_item(1)]}}}

    result = fast_delivery.evaluate(cart, {'city': 'wellington'}, MORNING)

    assert result['eligible'] is True


def test_invalid_cart_is_rejected():
    with pytest.raises(ValidationError):
        fast_delivery.evaluate('not a cart', {'city': 'Paarl'}, MORNING)


def test_route_rejects_invalid_cart(client):
    response = client.post('/api/v1/carts/check-50min-eligibility', json={
        'cart': 42, 'deliveryAddress': {'city': 'Paarl'}
    })

    assert response.status_code == 400
    assert response.get_json()['title'] == 'Invalid Cart'


def test_route_wraps_result(client):
    response = client.post('/api/v1/carts/check-50min-eligibility', json={
        'cart': [], 'delivery_address': {'city': 'Durban'}
    })

    data = response.get_json()['data']
    assert response.status_code == 200
    assert fast_delivery.OUTSIDE_ZONE in data['reasons']
    assert data['cutoffHour'] == 16
