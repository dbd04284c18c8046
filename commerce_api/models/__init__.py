"""
Modèles de l'application
Export centralisé de tous les modèles SQLAlchemy
"""

from commerce_api.models.enums import (
    OrderStatus, PaymentMethod, PaymentStatus,
    OrderPaymentStatus, InvoicePaymentStatus
)
from commerce_api.models.user import User, Customer
from commerce_api.models.cart import Cart, AbandonedCart, EMPTY_TOTALS
from commerce_api.models.order import Order
from commerce_api.models.invoice import Invoice, InvoiceCounter
from commerce_api.models.payment import Payment, PaymentAllocation
from commerce_api.models.accounting import Expense
from commerce_api.models.transaction import InitTransaction

__all__ = [
    # Enums
    'OrderStatus',
    'PaymentMethod',
    'PaymentStatus',
    'OrderPaymentStatus',
    'InvoicePaymentStatus',
    # Models
    'User',
    'Customer',
    'Cart',
    'AbandonedCart',
    'EMPTY_TOTALS',
    'Order',
    'Invoice',
    'InvoiceCounter',
    'Payment',
    'PaymentAllocation',
    'Expense',
    'InitTransaction'
]
