"""Order lifecycle service.

Handles:
- Order reference resolution (orderId, then orderNumber, then
  merchantTransactionId; ambiguous references are a conflict)
- Cancellation, deletion and status changes
- Idempotent invoice issuance numbered from the system counter
"""
import logging
from datetime import datetime
from typing import Dict, Any

from sqlalchemy.exc import IntegrityError

from commerce_api import db
from commerce_api.models import (
    Order, Invoice, InvoiceCounter, User,
    OrderStatus, InvoicePaymentStatus
)
from commerce_api.utils.aliases import OrderReference
from commerce_api.utils.errors import ValidationError, NotFoundError, ConflictError

logger = logging.getLogger(__name__)


INVOICE_COUNTER = 'invoices'


class OrderService:
    """Service for the order lifecycle and invoice issuance."""

    # ==================== Resolution ====================

    @staticmethod
    def require_reference(ref: OrderReference):
        if ref.is_empty:
            raise ValidationError(
                "orderId, orderNumber, or merchantTransactionId is required.",
                title="Missing Order Reference"
            )

    @classmethod
    def resolve(cls, ref: OrderReference) -> Order:
        """Find exactly one order for a reference.

        Raises:
            ValidationError: no reference supplied
            NotFoundError: no order matches
            ConflictError: more than one order matches
        """
        cls.require_reference(ref)

        if ref.order_id:
            order = db.session.get(Order, ref.order_id)
            if order is None:
                raise NotFoundError("Order could not be located.", title="Order Not Found")
            return order

        if ref.order_number:
            criterion = Order.order_number == ref.order_number
        else:
            criterion = Order.merchant_transaction_id == ref.merchant_transaction_id

        matches = Order.query.filter(criterion).limit(2).all()

        if not matches:
            raise NotFoundError("Order could not be located.", title="Order Not Found")
        if len(matches) > 1:
            raise ConflictError("Multiple orders match this reference.", title="Multiple Orders Found")

        return matches[0]

    @classmethod
    def get_order(cls, ref: OrderReference) -> Dict[str, Any]:
        return cls.resolve(ref).to_dict()

    @classmethod
    def get_editable(cls, customer_id: str) -> Dict[str, Any]:
        """Order numbers still editable for a customer (every order for admins)."""
        if not customer_id:
            raise ValidationError("customerId is required.", title="Missing Input")

        user = db.session.get(User, customer_id)
        access_type = user.access_type if user else None

        query = Order.query.filter(
            Order.editable.is_(True),
            Order.order_number.isnot(None)
        )
        if access_type != 'admin':
            query = query.filter(Order.customer_id == customer_id)

        return {
            'orderNumbers': [o.order_number for o in query.order_by(Order.created_at).all()],
            'accessType': access_type or 'customer'
        }

    # ==================== Lifecycle ====================

    @classmethod
    def cancel(cls, ref: OrderReference, reason) -> Dict[str, Any]:
        """Cancel an order. Cancelling twice is a no-op."""
        message = str(reason or '').strip()

        cls.require_reference(ref)
        if not message:
            raise ValidationError("reason is required.", title="Missing Input")

        order = cls.resolve(ref)
        result = {**order.reference_dict(), 'status': OrderStatus.CANCELLED.value}

        if order.status == OrderStatus.CANCELLED.value:
            result['alreadyCancelled'] = True
            return result

        now = datetime.utcnow()
        order.status = OrderStatus.CANCELLED.value
        order.lock(message, at=now)
        order.cancel_message = message
        order.cancel_message_at = now
        order.updated_at = now
        db.session.commit()

        logger.info(f"Order {order.id} cancelled: {message}")
        return result

    @classmethod
    def delete(cls, ref: OrderReference, force: bool = False) -> Dict[str, Any]:
        """Delete an order; paid orders require force."""
        order = cls.resolve(ref)
        identifiers = order.reference_dict()

        if order.is_paid and not force:
            raise ConflictError(
                "Paid orders cannot be deleted without force=true.",
                title="Order Already Paid",
                extra=identifiers
            )

        db.session.delete(order)
        db.session.commit()

        logger.info(f"Order {identifiers['orderId']} deleted (force={force})")
        return {**identifiers, 'deleted': True}

    @classmethod
    def update_status(cls, ref: OrderReference, status, reason=None) -> Dict[str, Any]:
        """Set the order status.

        Any value of the enum is accepted from any current status. Terminal
        statuses lock the order with the given reason or a default one.
        """
        status = str(status or '').strip().lower()
        reason = str(reason or '').strip()

        cls.require_reference(ref)
        if not OrderStatus.is_valid(status):
            raise ValidationError(
                f"status must be one of: {', '.join(OrderStatus.values())}",
                title="Invalid Status"
            )

        order = cls.resolve(ref)
        now = datetime.utcnow()

        order.status = status
        order.updated_at = now
        if OrderStatus.is_terminal(status):
            order.lock(reason or OrderStatus.default_reason(status), at=now)

        db.session.commit()
        logger.info(f"Order {order.id} status -> {status}")

        return {
            'orderId': order.id,
            'orderNumber': order.order_number,
            'status': status
        }

    # ==================== Invoices ====================

    @staticmethod
    def _counter_row(name: str):
        return InvoiceCounter.query.filter_by(name=name).with_for_update().first()

    @classmethod
    def _locked_counter(cls, name: str) -> InvoiceCounter:
        """Counter row under SELECT FOR UPDATE, created on first use."""
        counter = cls._counter_row(name)
        if counter is not None:
            return counter

        try:
            with db.session.begin_nested():
                db.session.add(InvoiceCounter(name=name, last=0))
        except IntegrityError:
            # Créé en parallèle par une autre requête
            pass

        counter = cls._counter_row(name)
        if counter is None:
            raise RuntimeError(f"Counter {name} could not be created")
        return counter

    @classmethod
    def create_invoice(cls, order_id, generated_by='system') -> Dict[str, Any]:
        """Issue the invoice of an order, at most once.

        The counter increment, the invoice insert and the order lock are
        committed together. A repeat call returns the existing invoice
        without touching the counter.
        """
        if not order_id:
            raise ValidationError("orderId is required.", title="Missing Order ID")

        order = db.session.get(Order, order_id)
        if order is None:
            raise NotFoundError("Invalid orderId.", title="Order Not Found")

        if order.invoice_id:
            return {'orderId': order.id, 'invoiceId': order.invoice_id, 'status': 'already_created'}

        counter = cls._locked_counter(INVOICE_COUNTER)
        sequence = counter.last + 1
        counter.last = sequence

        invoice_number = f"INV-{sequence:06d}"
        invoice_id = f"inv_{sequence}_{order.id}"
        issued_at = datetime.utcnow()
        snapshot = order.to_dict()
        customer = order.customer_snapshot or {}

        invoice = Invoice(
            id=invoice_id,
            invoice_number=invoice_number,
            order_id=order.id,
            status='issued',
            company_code=customer.get('companyCode') or customer.get('company_code'),
            customer_name=customer.get('companyName') or customer.get('name'),
            final_total=(order.totals or {}).get('final_incl') or 0,
            payment_status=(InvoicePaymentStatus.PAID.value if order.is_paid
                            else InvoicePaymentStatus.PENDING.value),
            invoice_date=issued_at.date(),
            order_snapshot={
                'docId': order.id,
                'order': snapshot['order'],
                'items': snapshot['items'],
                'totals': snapshot['totals'],
                'customer_snapshot': snapshot['customer_snapshot'],
                'delivery': snapshot['delivery'],
                'meta': snapshot['meta']
            },
            issued_at=issued_at,
            generated_by=generated_by
        )
        db.session.add(invoice)

        order.invoice_id = invoice_id
        order.invoice_number = invoice_number
        order.invoice_status = 'issued'
        order.invoice_generated_at = issued_at
        order.invoice_generated_by = generated_by
        order.editable = False
        if not order.locked_at:
            order.locked_at = issued_at
        order.updated_at = issued_at

        try:
            db.session.commit()
        except IntegrityError:
            # Une autre requête a facturé cette commande entre-temps
            db.session.rollback()
            existing = Invoice.query.filter_by(order_id=order_id).first()
            if existing is None:
                raise
            logger.warning(f"Invoice for order {order_id} already issued as {existing.id}")
            return {'orderId': order_id, 'invoiceId': existing.id, 'status': 'already_created'}

        logger.info(f"Invoice {invoice_number} issued for order {order.id} by {generated_by}")
        return {
            'orderId': order.id,
            'invoiceId': invoice_id,
            'invoiceNumber': invoice_number,
            'locked': True
        }
