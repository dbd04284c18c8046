"""
Service Lieux de livraison
Tableau deliveryLocations du User; au plus un lieu is_default = true
"""

import logging
import uuid
from datetime import datetime
from typing import Dict, Any, List

from commerce_api import db
from commerce_api.models import User
from commerce_api.utils.errors import ValidationError, NotFoundError

logger = logging.getLogger(__name__)


LOCATION_FIELDS = (
    'locationName', 'streetAddress', 'addressLine2', 'city',
    'stateProvinceRegion', 'postalCode', 'country', 'deliveryInstructions'
)

# Champs non modifiables via updates
PROTECTED_FIELDS = ('id', 'createdAt')


def _now_iso() -> str:
    return datetime.utcnow().isoformat()


def _clear_defaults(locations: List[Dict[str, Any]], keep_id=None) -> List[Dict[str, Any]]:
    return [
        loc if loc.get('id') == keep_id else {**loc, 'is_default': False}
        for loc in locations
    ]


class LocationService:
    """Lieux de livraison d'un utilisateur"""

    @staticmethod
    def _user(user_id) -> User:
        if not user_id:
            raise ValidationError("userId is required.", title="Missing userId")
        user = db.session.get(User, user_id)
        if user is None:
            raise NotFoundError(f"No user {user_id}", title="User Not Found")
        return user

    @staticmethod
    def _save(user: User, locations: List[Dict[str, Any]]):
        user.delivery_locations = locations
        user.updated_at = datetime.utcnow()
        db.session.commit()

    @classmethod
    def get(cls, user_id, default_only=False) -> Dict[str, Any]:
        user = cls._user(user_id)
        locations = list(user.delivery_locations or [])

        if default_only:
            default = next((loc for loc in locations if loc.get('is_default') is True), None)
            return {'userId': user_id, 'deliveryLocation': default}

        return {'userId': user_id, 'deliveryLocations': locations}

    @classmethod
    def create(cls, user_id, location) -> Dict[str, Any]:
        """
        Ajoute un lieu; s'il est par défaut, les autres perdent le flag
        dans la même écriture
        """
        if not user_id:
            raise ValidationError("A valid userId is required.", title="Missing userId")
        if not isinstance(location, dict):
            raise ValidationError("A delivery location object is required.", title="Missing Location")
        if not location.get('locationName') or not location.get('streetAddress'):
            raise ValidationError("locationName and streetAddress are required.", title="Invalid Location")

        user = cls._user(user_id)
        is_default = location.get('is_default') is True
        existing = list(user.delivery_locations or [])
        if is_default:
            existing = _clear_defaults(existing)

        now = _now_iso()
        new_location = {
            'id': str(uuid.uuid4()),
            **{field: location.get(field) or '' for field in LOCATION_FIELDS},
            'is_default': is_default,
            'createdAt': now,
            'updatedAt': now
        }
        locations = existing + [new_location]
        cls._save(user, locations)

        logger.info(f"User {user_id}: location {new_location['id']} added (default={is_default})")
        return {'userId': user_id, 'added': new_location, 'deliveryLocations': locations}

    @classmethod
    def update(cls, user_id, location_id, updates) -> Dict[str, Any]:
        if not user_id or not location_id:
            raise ValidationError("userId and locationId are required.", title="Missing Fields")
        if not isinstance(updates, dict):
            raise ValidationError("Specify updates object.", title="Missing Updates")

        user = cls._user(user_id)
        locations = list(user.delivery_locations or [])

        index = next((i for i, loc in enumerate(locations) if loc.get('id') == location_id), -1)
        if index < 0:
            raise NotFoundError(f"Location {location_id} does not exist.", title="Location Not Found")

        changes = {k: v for k, v in updates.items() if k not in PROTECTED_FIELDS}
        if updates.get('is_default') is True:
            locations = _clear_defaults(locations, keep_id=location_id)

        locations[index] = {**locations[index], **changes, 'updatedAt': _now_iso()}
        cls._save(user, locations)

        logger.info(f"User {user_id}: location {location_id} updated")
        return {
            'userId': user_id,
            'locationId': location_id,
            'updated': locations[index],
            'deliveryLocations': locations
        }

    @classmethod
    def delete(cls, user_id, location_id) -> Dict[str, Any]:
        if not user_id or not location_id:
            raise ValidationError("userId and locationId required.", title="Missing Fields")

        user = cls._user(user_id)
        existing = list(user.delivery_locations or [])
        remaining = [loc for loc in existing if loc.get('id') != location_id]

        if len(remaining) == len(existing):
            raise NotFoundError(f"Location {location_id} not found.", title="Location Not Found")

        cls._save(user, remaining)

        logger.info(f"User {user_id}: location {location_id} deleted")
        return {'userId': user_id, 'deletedId': location_id, 'deliveryLocations': remaining}
