"""
Routes v1 - Comptes
Lieux de livraison des utilisateurs
"""

from flask import request
from commerce_api.routes.v1 import v1_bp
from commerce_api.services.location_service import LocationService
from commerce_api.utils.aliases import request_body, normalize
from commerce_api.utils.decorators import v1_endpoint
from commerce_api.utils.responses import ok


@v1_bp.route('/accounts/locations/get', methods=['GET', 'POST'])
@v1_endpoint('Server Error', 'Failed to fetch delivery locations.')
def get_locations():
    """
    Query / Body: {userId, defaultOnly}
    """
    data = normalize(request.args.to_dict()) if request.method == 'GET' else request_body()
    default_only = str(data.get('defaultOnly', '')).lower() == 'true'
    return ok(LocationService.get(data.get('uid'), default_only=default_only))


@v1_bp.route('/accounts/locations/create', methods=['POST'])
@v1_endpoint('Server Error', 'Failed to add delivery location.')
def create_location():
    """Body: {userId, location}"""
    data = request_body()
    return ok(LocationService.create(data.get('uid'), data.get('location')))


@v1_bp.route('/accounts/locations/update', methods=['POST'])
@v1_endpoint('Server Error', 'Could not update delivery location.')
def update_location():
    """Body: {userId, locationId, updates}"""
    data = request_body()
    return ok(LocationService.update(data.get('uid'), data.get('locationId'), data.get('updates')))


@v1_bp.route('/accounts/locations/delete', methods=['POST'])
@v1_endpoint('Server Error', 'Failed to delete location.')
def delete_location():
    """Body: {userId, locationId}"""
    data = request_body()
    return ok(LocationService.delete(data.get('uid'), data.get('locationId')))
