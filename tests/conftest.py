"""
Fixtures partagées: application de test, base SQLite en mémoire,
faux services de stock et de catalogue.
"""

import pytest

from commerce_api import create_app, db
from commerce_api.services.catalogue_service import CatalogueServiceError
from commerce_api.services.stock_service import StockServiceError, StockCall


class FakeStockService:
    """
    Enregistre les appels.
    fail_on: actions en échec; failing_ids: produits en échec
    """

    def __init__(self):
        self.calls = []
        self.fail_on = set()
        self.failing_ids = set()

    def reserve(self, unique_id, variant_id, qty):
        return self._call('reserve', unique_id, variant_id, qty)

    def release(self, unique_id, variant_id, qty):
        return self._call('release', unique_id, variant_id, qty)

    def _call(self, action, unique_id, variant_id, qty):
        if action in self.fail_on or unique_id in self.failing_ids:
            raise StockServiceError(action, unique_id, variant_id, qty, "API error: 503", status_code=503)
        call = StockCall(action, unique_id, variant_id, qty)
        self.calls.append(call)
        return call


class FakeCatalogueService:
    """Produits servis par identifiant; failing_ids: lectures en échec"""

    def __init__(self):
        self.products = {}
        self.failing_ids = set()

    def add(self, product):
        self.products[product['product']['unique_id']] = product

    def get_product(self, unique_id):
        if unique_id in self.failing_ids or unique_id not in self.products:
            raise CatalogueServiceError(unique_id, 'API error: 503')
        return self.products[unique_id]


@pytest.fixture
def stock():
    return FakeStockService()


@pytest.fixture
def catalogue():
    return FakeCatalogueService()


@pytest.fixture
def app(stock, catalogue):
    app = create_app('testing', stock_service=stock, catalogue_service=catalogue)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()
