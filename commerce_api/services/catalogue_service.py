"""
Client du catalogue produits
============================

Lecture d'un produit à jour (placement, variantes, promotion) pour la
réconciliation des paniers.

Endpoint:
- GET {base_url}/product/get?id={unique_id} -> {ok, data}

Sans retry: un échec remonte en CatalogueServiceError.
"""

import logging
import requests
from typing import Dict, Any

logger = logging.getLogger(__name__)

API_TIMEOUT = 10  # secondes


class CatalogueServiceError(Exception):
    """Échec de lecture d'un produit au catalogue"""

    def __init__(self, unique_id: str, reason: str):
        self.unique_id = unique_id
        self.reason = reason
        super().__init__(f"Catalogue fetch failed for {unique_id}: {reason}")


class CatalogueService:
    """
    Lecture des produits du catalogue

    Configuration:
        - base_url: URL de base (ex: https://catalogue/api/catalogue/v1/products)
        - timeout: Timeout HTTP en secondes
    """

    def __init__(self, base_url: str, timeout: float = API_TIMEOUT, session=None):
        self.base_url = (base_url or '').rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_product(self, unique_id: str) -> Dict[str, Any]:
        """Document produit à jour ({product, placement, variants, ...})"""
        try:
            response = self.session.get(
                f"{self.base_url}/product/get",
                params={'id': unique_id},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Catalogue error for {unique_id}: {e}")
            raise CatalogueServiceError(unique_id, str(e)) from e

        if not response.ok:
            logger.error(f"Catalogue rejected {unique_id}: {response.status_code}")
            raise CatalogueServiceError(unique_id, f"API error: {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise CatalogueServiceError(unique_id, "Invalid JSON response") from e

        if not isinstance(body, dict):
            raise CatalogueServiceError(unique_id, "Invalid response")
        if not body.get('ok') or not isinstance(body.get('data'), dict):
            raise CatalogueServiceError(unique_id, body.get('message') or "Invalid response")

        return body['data']
