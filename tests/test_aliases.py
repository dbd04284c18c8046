"""Tests de la normalisation des corps de requête"""

from commerce_api.utils.aliases import normalize, OrderReference


def test_first_non_blank_alias_wins():
    data = normalize({'uid': '  ', 'userId': ' u-1 ', 'user_id': 'u-2'})

    assert data['uid'] == 'u-1'


def test_missing_canonical_key_is_absent():
    data = normalize({'orderId': ''})

    assert 'orderId' not in data


def test_non_string_values_are_kept():
    data = normalize({'payment_ids': ['a', 'b'], 'cart_value': 12.5})

    assert data['paymentIds'] == ['a', 'b']
    assert data['cartValue'] == 12.5


def test_non_dict_body():
    assert normalize(None) == {}
    assert normalize(['x']) == {}


def test_order_reference():
    ref = OrderReference.from_body(normalize({'order_number': 'ORD-1'}))

    assert ref == OrderReference(order_number='ORD-1')
    assert not ref.is_empty
    assert OrderReference.from_body({}).is_empty
