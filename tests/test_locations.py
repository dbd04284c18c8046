"""Tests des lieux de livraison"""

from commerce_api import db
from commerce_api.models import User
from tests.factories import make_user


def create_location(client, name, is_default=False, user_id='user-1'):
    return client.post('/api/v1/accounts/locations/create', json={
        'userId': user_id,
        'location': {
            'locationName': name,
            'streetAddress': f"1 {name} Street",
            'city': 'Paarl',
            'is_default': is_default
        }
    })


def defaults(user_id='user-1'):
    user = db.session.get(User, user_id)
    return [loc['locationName'] for loc in user.delivery_locations if loc['is_default']]


def test_new_default_clears_previous_default(client):
    make_user()
    create_location(client, 'Warehouse', is_default=True)

    response = create_location(client, 'Shop', is_default=True)

    data = response.get_json()['data']
    assert response.status_code == 200
    assert data['added']['is_default'] is True
    assert len(data['deliveryLocations']) == 2
    assert defaults() == ['Shop']


def test_update_to_default_clears_siblings(client):
    make_user()
    create_location(client, 'Warehouse', is_default=True)
    shop = create_location(client, 'Shop').get_json()['data']['added']

    response = client.post('/api/v1/accounts/locations/update', json={
        'user_id': 'user-1',
        'location_id': shop['id'],
        'updates': {'is_default': True, 'id': 'hijacked', 'city': 'Wellington'}
    })

    updated = response.get_json()['data']['updated']
    assert updated['id'] == shop['id']
    assert updated['city'] == 'Wellington'
    assert updated['createdAt'] == shop['createdAt']
    assert defaults() == ['Shop']


def test_get_default_only(client):
    make_user()
    create_location(client, 'Warehouse')
    create_location(client, 'Shop', is_default=True)

    response = client.get('/api/v1/accounts/locations/get?userId=user-1&defaultOnly=true')

    assert response.get_json()['data']['deliveryLocation']['locationName'] == 'Shop'


def test_get_all_locations_by_post(client):
    make_user()
    create_location(client, 'Warehouse')

    data = client.post('/api/v1/accounts/locations/get', json={'uid': 'user-1'}).get_json()['data']

    assert [loc['locationName'] for loc in data['deliveryLocations']] == ['Warehouse']


def test_create_requires_name_and_street(client):
    make_user()

    response = client.post('/api/v1/accounts/locations/create', json={
        'userId': 'user-1', 'location': {'city': 'Paarl'}
    })

    assert response.status_code == 400
    assert response.get_json()['title'] == 'Invalid Location'


def test_unknown_user(client):
    response = create_location(client, 'Shop', user_id='ghost')

    assert response.status_code == 404
    assert response.get_json()['title'] == 'User Not Found'


def test_delete_location(client):
    make_user()
    shop = create_location(client, 'Shop').get_json()['data']['added']

    deleted = client.post('/api/v1/accounts/locations/delete', json={'userId': 'user-1', 'locationId': shop['id']})
    missing = client.post('/api/v1/accounts/locations/delete', json={'userId': 'user-1', 'locationId': shop['id']})

    assert deleted.get_json()['data']['deliveryLocations'] == []
    assert missing.status_code == 404
    assert missing.get_json()['title'] == 'Location Not Found'
