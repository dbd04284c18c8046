"""
Service de réservation de stock promotionnel
============================================

Client HTTP du catalogue externe. Les quantités en promotion d'un panier
sont réservées chez le catalogue à l'ajout et libérées au retrait, à la
suppression du panier ou à la récupération des paniers abandonnés.

Endpoints:
- POST {base_url}/reserve  {unique_id, variant_id, qty}
- POST {base_url}/release  {unique_id, variant_id, qty}

Un appel par ligne, sans retry: un échec remonte en StockServiceError.
"""

import logging
import requests
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

# Timeout par défaut pour les appels au catalogue
API_TIMEOUT = 10  # secondes


class StockServiceError(Exception):
    """Échec d'un appel au service de stock"""

    def __init__(self, action: str, unique_id: str, variant_id: str, qty: int,
                 reason: str, status_code: Optional[int] = None):
        self.action = action
        self.unique_id = unique_id
        self.variant_id = variant_id
        self.qty = qty
        self.reason = reason
        self.status_code = status_code
        super().__init__(
            f"Stock {action} failed for {unique_id}/{variant_id} (qty {qty}): {reason}"
        )


@dataclass
class StockCall:
    """Appel effectué au catalogue"""
    action: str
    unique_id: str
    variant_id: str
    qty: int


class StockReservationService:
    """
    Réservation / libération de stock promotionnel

    Configuration:
        - base_url: URL de base (ex: https://catalogue/api/v1/products/sale)
        - timeout: Timeout HTTP en secondes
    """

    def __init__(self, base_url: str, timeout: float = API_TIMEOUT, session=None):
        self.base_url = (base_url or '').rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def reserve(self, unique_id: str, variant_id: str, qty: int) -> Optional[StockCall]:
        """Réserve qty unités; aucune requête si qty <= 0"""
        return self._post('reserve', unique_id, variant_id, qty)

    def release(self, unique_id: str, variant_id: str, qty: int) -> Optional[StockCall]:
        """Libère qty unités; aucune requête si qty <= 0"""
        return self._post('release', unique_id, variant_id, qty)

    def _post(self, action: str, unique_id: str, variant_id: str, qty: int) -> Optional[StockCall]:
        if not qty or qty <= 0:
            return None

        payload = {'unique_id': unique_id, 'variant_id': variant_id, 'qty': qty}

        try:
            response = self.session.post(
                f"{self.base_url}/{action}",
                json=payload,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Stock {action} error for {unique_id}/{variant_id}: {e}")
            raise StockServiceError(action, unique_id, variant_id, qty, str(e)) from e

        if not response.ok:
            logger.error(
                f"Stock {action} rejected for {unique_id}/{variant_id}: "
                f"{response.status_code} {response.text[:200]}"
            )
            raise StockServiceError(
                action, unique_id, variant_id, qty,
                f"API error: {response.status_code}",
                status_code=response.status_code
            )

        logger.info(f"Stock {action}: {unique_id}/{variant_id} x{qty}")
        return StockCall(action, unique_id, variant_id, qty)
