"""Payment allocation ledger.

Handles:
- Manual payment capture (cash, EFT, card machine) and updates
- Allocation of payments to orders, with a no-write preview
- Reversal of allocations when a payment is deleted
- Allocation lookup for a payment, enriched with invoice metadata

Invariant: remaining_amount_incl = amount_incl - sum(allocations) >= 0,
and the payment status is derived from the same two figures.
"""
import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from commerce_api import db
from commerce_api.models import (
    Payment, PaymentAllocation, Order, Invoice,
    PaymentMethod, PaymentStatus, OrderStatus,
    OrderPaymentStatus, InvoicePaymentStatus
)
from commerce_api.utils.aliases import is_blank
from commerce_api.utils.errors import ValidationError, NotFoundError, ConflictError
from commerce_api.utils.helpers import round_money, to_float, iso

logger = logging.getLogger(__name__)


PAGE_SIZE = 50
PAGE_WINDOW = 3

# Champ absent du corps (distinct de null)
UNSET = object()


def _proof_fields(proof) -> Dict[str, Optional[str]]:
    if isinstance(proof, dict):
        return {'proof_type': proof.get('type') or None, 'proof_url': proof.get('url') or None}
    return {'proof_type': None, 'proof_url': None}


def _validate_method(method: str):
    if not PaymentMethod.is_valid(method):
        raise ValidationError(
            "payment.method must be 'cash', 'eft', or 'card_machine'.",
            title="Invalid Method"
        )


def _validate_amount(value) -> float:
    """Montant arrondi au centime; doit rester > 0 après arrondi"""
    amount = to_float(value)
    if amount is not None:
        amount = round_money(amount)
    if amount is None or amount <= 0:
        raise ValidationError("payment.amount_incl must be > 0.", title="Invalid Amount")
    return amount


def _unique_ids(payment_ids) -> List[str]:
    if not isinstance(payment_ids, list):
        return []
    seen = []
    for value in payment_ids:
        text = str(value).strip() if value is not None else ''
        if is_blank(text) or text.lower() in ('null', 'undefined') or text in seen:
            continue
        seen.append(text)
    return seen


class PaymentService:
    """Service for payments and their allocations."""

    # ==================== Capture ====================

    @classmethod
    def create(cls, customer_id, payment: Dict[str, Any], customer_code=None,
               proof=None, created_by=None) -> Dict[str, Any]:
        """Record a new, unallocated payment."""
        payment = payment if isinstance(payment, dict) else {}
        method = str(payment.get('method') or '').strip()
        currency = str(payment.get('currency') or 'ZAR').strip()

        if not customer_id:
            raise ValidationError("customerId is required.", title="Missing Input")
        _validate_method(method)
        amount = _validate_amount(payment.get('amount_incl'))

        record = Payment(
            customer_id=customer_id,
            customer_code=customer_code or None,
            method=method,
            amount_incl=amount,
            remaining_amount_incl=amount,
            currency=currency,
            status=PaymentStatus.UNALLOCATED.value,
            reference=payment.get('reference') or None,
            note=payment.get('note') or None,
            created_by=created_by or None,
            **_proof_fields(proof)
        )
        db.session.add(record)
        db.session.commit()

        logger.info(f"Payment {record.id} created: {method} {amount} {currency} for {customer_id}")
        return {'docId': record.id, 'payment': record.to_dict()}

    @classmethod
    def _load(cls, payment_id, lock=False) -> Payment:
        if not payment_id:
            raise ValidationError("paymentId is required.", title="Missing Input")

        query = Payment.query.filter_by(id=payment_id)
        if lock:
            query = query.with_for_update()
        record = query.first()
        if record is None:
            raise NotFoundError("Payment could not be located.", title="Payment Not Found")
        return record

    @classmethod
    def update(cls, payment_id, payment: Optional[Dict[str, Any]] = None, proof=UNSET) -> Dict[str, Any]:
        """Update a payment; the amount cannot drop below what is allocated."""
        record = cls._load(payment_id, lock=True)
        payment = payment if isinstance(payment, dict) else {}

        allocated = record.allocated_incl
        if payment.get('amount_incl') is not None:
            amount = _validate_amount(payment['amount_incl'])
        else:
            amount = round_money(record.amount_incl)

        if allocated > amount:
            raise ValidationError(
                "payment.amount_incl cannot be less than allocated amount.",
                title="Invalid Amount"
            )

        if payment.get('method'):
            _validate_method(payment['method'])
            record.method = payment['method']
        if payment.get('currency'):
            record.currency = payment['currency']
        if 'reference' in payment:
            record.reference = payment['reference'] or None
        if 'note' in payment:
            record.note = payment['note'] or None
        if proof is not UNSET:
            for field, value in _proof_fields(proof).items():
                setattr(record, field, value)

        record.amount_incl = amount
        record.remaining_amount_incl = round_money(amount - allocated)
        record.status = PaymentStatus.compute(amount, allocated)
        record.updated_at = datetime.utcnow()
        db.session.commit()

        logger.info(f"Payment {record.id} updated: amount {amount}, allocated {allocated}")
        return {'paymentId': record.id, 'updated': True}

    # ==================== Listing ====================

    @classmethod
    def list_for_customer(cls, customer_id, status=None, page=None) -> Dict[str, Any]:
        """Payments of a customer, newest first, optionally paginated."""
        if not customer_id:
            raise ValidationError("customerId is required.", title="Missing Input")

        query = Payment.query.filter(Payment.customer_id == customer_id)
        if status == 'unallocated_or_partial':
            query = query.filter(Payment.status.in_([
                PaymentStatus.UNALLOCATED.value,
                PaymentStatus.PARTIALLY_ALLOCATED.value
            ]))
        elif status:
            query = query.filter(Payment.status == status)

        payments = query.order_by(Payment.created_at.desc()).all()
        total = len(payments)

        paginate = page is not None
        current = to_float(page, 1) if paginate else 1
        current = int(current) if current and current > 0 else 1

        page_size = PAGE_SIZE if paginate else total
        if total == 0:
            total_pages = 0
        else:
            total_pages = -(-total // PAGE_SIZE) if paginate else 1

        start = (current - 1) * PAGE_SIZE if paginate else 0
        end = start + PAGE_SIZE if paginate else total
        page_items = [
            {**p.to_dict(), 'payment_index': start + i + 1}
            for i, p in enumerate(payments[start:end])
        ]

        window_start = max(1, current - PAGE_WINDOW)
        window_end = min(total_pages, current + PAGE_WINDOW)

        return {
            'payments': page_items,
            'totals': {
                'totalPayments': total,
                'totalAmountIncl': round_money(sum(p.amount_incl or 0 for p in payments)),
                'totalRemainingIncl': round_money(sum(p.remaining_amount_incl or 0 for p in payments))
            },
            'pagination': {
                'page': current,
                'pageSize': page_size,
                'total': total,
                'totalPages': total_pages,
                'pages': list(range(1, total_pages + 1)),
                'pageWindow': list(range(window_start, window_end + 1)) if total_pages else [],
                'moreBefore': max(0, window_start - 1),
                'moreAfter': max(0, total_pages - window_end)
            }
        }

    # ==================== Allocation ====================

    @staticmethod
    def _sync_invoice(order: Order):
        """Keep the issued invoice's payment status in step with the order."""
        if not order.invoice_id:
            return
        invoice = db.session.get(Invoice, order.invoice_id)
        if invoice is None or invoice.payment_status == InvoicePaymentStatus.CANCELLED.value:
            return
        invoice.payment_status = (InvoicePaymentStatus.PAID.value if order.is_paid
                                  else InvoicePaymentStatus.PENDING.value)

    @staticmethod
    def _order_for_number(order_number, lock=False) -> Order:
        query = Order.query.filter(Order.order_number == order_number)
        if lock:
            query = query.with_for_update()
        matches = query.limit(2).all()
        if not matches:
            raise NotFoundError("Order could not be located.", title="Order Not Found")
        if len(matches) > 1:
            raise ConflictError("Multiple orders match this orderNumber.", title="Multiple Orders Found")
        return matches[0]

    @staticmethod
    def _check_input(order_number, payment_ids) -> List[str]:
        if is_blank(order_number):
            raise ValidationError("orderNumber is required.", title="Missing Input")
        ids = _unique_ids(payment_ids)
        if not ids:
            raise ValidationError("paymentIds must be a non-empty array.", title="Missing Input")
        return ids

    @staticmethod
    def _order_customer(order: Order) -> Optional[str]:
        return (order.meta or {}).get('orderedFor') or order.customer_id

    @classmethod
    def allocate(cls, order_number, payment_ids) -> Dict[str, Any]:
        """Allocate payments, in order, to what is still due on an order."""
        ids = cls._check_input(order_number, payment_ids)
        order = cls._order_for_number(order_number, lock=True)

        if order.status == OrderStatus.CANCELLED.value:
            raise ConflictError("Cannot allocate payments to a cancelled order.", title="Invalid Order State")
        if OrderPaymentStatus.is_refunded(order.payment_status):
            raise ConflictError("Cannot allocate payments to a refunded order.", title="Invalid Order State")

        required = order.required_incl
        paid = round_money(order.paid_amount_incl or 0)
        remaining_due = round_money(required - paid)

        if remaining_due <= 0:
            return {
                'orderNumber': order_number,
                'status': 'already_paid',
                'allocated_total_incl': 0,
                'remaining_due_incl': 0,
                'payment_status': OrderPaymentStatus.compute(required, paid),
                'allocations': []
            }

        customer_id = cls._order_customer(order)
        currency = (order.currency or 'ZAR').strip()
        manual_payments = list(order.manual_payments or [])
        now = datetime.utcnow()
        results = []
        allocated_total = 0.0

        for payment_id in ids:
            if remaining_due <= 0:
                break

            record = Payment.query.filter_by(id=payment_id).with_for_update().first()
            if record is None:
                results.append({'paymentId': payment_id, 'allocated_incl': 0,
                                'remaining_amount_incl': None, 'status': 'not_found'})
                continue

            if customer_id and record.customer_id != customer_id:
                results.append({'paymentId': payment_id, 'allocated_incl': 0,
                                'remaining_amount_incl': record.remaining_amount_incl,
                                'status': 'customer_mismatch'})
                continue

            if (record.currency or 'ZAR').strip() != currency:
                results.append({'paymentId': payment_id, 'allocated_incl': 0,
                                'remaining_amount_incl': record.remaining_amount_incl or 0,
                                'status': 'currency_mismatch'})
                continue

            available = round_money(record.remaining_amount_incl or 0)
            if available <= 0:
                results.append({'paymentId': payment_id, 'allocated_incl': 0,
                                'remaining_amount_incl': available, 'status': 'no_funds'})
                continue

            amount = round_money(min(available, remaining_due))
            allocation = PaymentAllocation(
                order_id=order.id,
                order_number=order.order_number,
                invoice_id=order.invoice_id,
                company_code=(order.customer_snapshot or {}).get('companyCode'),
                amount_incl=amount,
                allocated_at=now
            )
            record.allocations.append(allocation)
            db.session.flush()

            allocated = record.allocated_incl
            record.remaining_amount_incl = round_money(record.amount_incl - allocated)
            record.status = PaymentStatus.compute(record.amount_incl, allocated)
            record.updated_at = now

            manual_payments.append({
                'paymentId': payment_id,
                'allocationId': allocation.id,
                'amount_incl': amount,
                'method': record.method,
                'reference': record.reference,
                'allocatedAt': iso(now)
            })

            remaining_due = round_money(remaining_due - amount)
            allocated_total = round_money(allocated_total + amount)
            results.append({'paymentId': payment_id, 'allocated_incl': amount,
                            'remaining_amount_incl': record.remaining_amount_incl,
                            'status': record.status})

        next_paid = round_money(paid + allocated_total)
        order.paid_amount_incl = next_paid
        order.payment_status = OrderPaymentStatus.compute(required, next_paid)
        order.manual_payments = manual_payments
        order.updated_at = now
        cls._sync_invoice(order)
        db.session.commit()

        logger.info(f"Order {order.order_number}: allocated {allocated_total}, status {order.payment_status}")
        return {
            'orderNumber': order_number,
            'allocated_total_incl': allocated_total,
            'remaining_due_incl': round_money(required - next_paid),
            'payment_status': order.payment_status,
            'allocations': results
        }

    @classmethod
    def preview(cls, order_number, payment_ids) -> Dict[str, Any]:
        """Allocation plan for the given payments, without writing."""
        ids = cls._check_input(order_number, payment_ids)
        order = cls._order_for_number(order_number)

        required = order.required_incl
        paid = round_money(order.paid_amount_incl or 0)
        customer_id = cls._order_customer(order)
        remaining_due = round_money(required - paid)
        selected = 0.0
        summaries = []

        for payment_id in ids:
            record = db.session.get(Payment, payment_id)
            if record is None:
                summaries.append({'paymentId': payment_id, 'usable_amount_incl': 0, 'status': 'not_found'})
                continue
            if customer_id and record.customer_id != customer_id:
                summaries.append({'paymentId': payment_id, 'usable_amount_incl': 0, 'status': 'customer_mismatch'})
                continue

            available = round_money(record.remaining_amount_incl or 0)
            usable = round_money(max(0, min(available, remaining_due)))
            selected = round_money(selected + usable)
            remaining_due = round_money(remaining_due - usable)

            summaries.append({
                'paymentId': payment_id,
                'usable_amount_incl': usable,
                'remaining_amount_incl': available,
                'status': 'ok' if available > 0 else 'no_funds'
            })

        outstanding = remaining_due if remaining_due > 0 else 0
        return {
            'orderNumber': order_number,
            'required_amount_incl': round_money(required),
            'already_paid_incl': paid,
            'selected_payments_total_incl': selected,
            'remaining_due_incl': remaining_due,
            'additional_needed_incl': outstanding,
            'max_additional_allocatable_incl': outstanding,
            'can_cover': remaining_due <= 0,
            'payments': summaries
        }

    # ==================== Deletion ====================

    @classmethod
    def delete(cls, payment_id) -> Dict[str, Any]:
        """Reverse every allocation on its order, then delete the payment."""
        record = cls._load(payment_id, lock=True)
        allocation_ids = {a.id for a in record.allocations}

        for allocation in record.allocations:
            amount = round_money(allocation.amount_incl or 0)
            if not allocation.order_id or amount <= 0:
                continue

            order = db.session.get(Order, allocation.order_id)
            if order is None:
                continue

            next_paid = round_money(max(0, (order.paid_amount_incl or 0) - amount))
            order.paid_amount_incl = next_paid
            order.payment_status = OrderPaymentStatus.compute(order.required_incl, next_paid)
            order.manual_payments = [
                entry for entry in (order.manual_payments or [])
                if entry.get('allocationId') not in allocation_ids
            ]
            order.updated_at = datetime.utcnow()
            cls._sync_invoice(order)

        db.session.delete(record)
        db.session.commit()

        logger.info(f"Payment {payment_id} deleted, {len(allocation_ids)} allocation(s) reversed")
        return {'paymentId': payment_id, 'deleted': True}

    # ==================== Lookup ====================

    @classmethod
    def allocations_for(cls, payment_id) -> List[Dict[str, Any]]:
        """Allocations of a payment, each enriched with its invoice metadata.

        The invoice is read per allocation; a missing invoice leaves the
        metadata fields null.
        """
        applied_to = []
        allocations = PaymentAllocation.query.filter_by(payment_id=payment_id) \
            .order_by(PaymentAllocation.allocated_at).all()

        for allocation in allocations:
            invoice_date = invoice_pdf_url = invoice_total = None
            if allocation.invoice_id:
                invoice = db.session.get(Invoice, allocation.invoice_id)
                if invoice is not None:
                    invoice_date = iso(invoice.invoice_date)
                    invoice_pdf_url = invoice.invoice_pdf_url
                    invoice_total = invoice.final_total

            applied_to.append({
                'invoiceId': allocation.invoice_id,
                'companyCode': allocation.company_code,
                'amount': allocation.amount_incl,
                'date': iso(allocation.allocated_at),
                'status': allocation.status,
                'createdBy': allocation.created_by,
                'allocationId': allocation.id,
                'invoiceDate': invoice_date,
                'invoicePDFURL': invoice_pdf_url,
                'invoiceTotal': invoice_total
            })

        return applied_to
