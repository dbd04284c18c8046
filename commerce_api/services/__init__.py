"""
Services de l'application
Logique métier réutilisable
"""

from commerce_api.services.stock_service import StockReservationService, StockServiceError
from commerce_api.services.catalogue_service import CatalogueService, CatalogueServiceError
from commerce_api.services.cart_service import CartService
from commerce_api.services.order_service import OrderService
from commerce_api.services.payment_service import PaymentService
from commerce_api.services.accounting_service import AccountingService
from commerce_api.services.location_service import LocationService
from commerce_api.services.transaction_service import TransactionService

__all__ = [
    'StockReservationService',
    'StockServiceError',
    'CatalogueService',
    'CatalogueServiceError',
    'CartService',
    'OrderService',
    'PaymentService',
    'AccountingService',
    'LocationService',
    'TransactionService'
]
