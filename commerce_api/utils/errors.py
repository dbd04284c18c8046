"""
Exceptions métier de l'API
Chaque erreur porte son statut HTTP, un titre et un message lisibles
"""

from typing import Optional, Dict, Any


class ApiError(Exception):
    """Erreur renvoyée au client avec un statut HTTP explicite"""

    status = 500
    title = 'Server Error'

    def __init__(self, message: str, title: Optional[str] = None,
                 status: Optional[int] = None, extra: Optional[Dict[str, Any]] = None):
        self.message = message
        if title:
            self.title = title
        if status:
            self.status = status
        self.extra = extra or {}
        super().__init__(message)


class ValidationError(ApiError):
    status = 400
    title = 'Invalid Request'


class NotFoundError(ApiError):
    status = 404
    title = 'Not Found'


class ConflictError(ApiError):
    status = 409
    title = 'Conflict'


class UpstreamError(ApiError):
    """Échec d'un service externe (ex: réservation de stock)"""
    status = 500
    title = 'Upstream Error'
