"""
Service Comptabilité - Rapports en lecture seule
================================================

- Contrôle de crédit avant checkout
- Compte de résultat (P&L) sur une période
- Recalcul du total final (TVA, consignes, frais carte)
"""

import logging
from collections import OrderedDict
from decimal import Decimal
from typing import Optional, Dict, Any

from commerce_api import db
from commerce_api.models import User, Customer, Invoice, Expense, InvoicePaymentStatus
from commerce_api.utils.errors import ValidationError, NotFoundError
from commerce_api.utils.helpers import to_float, parse_date, format_money, round_money, iso

logger = logging.getLogger(__name__)


VAT_RATE = Decimal('0.15')
CARD_FEE_RATE = Decimal('0.0295')
CARD_FEE_FIXED = Decimal('0.50')


class AccountingService:
    """Agrégations comptables (aucune écriture)"""

    @staticmethod
    def credit_limit_for(company_code: str) -> float:
        """
        Limite de crédit d'une entreprise: User d'abord, Customer en repli

        Raises:
            NotFoundError: aucune fiche pour ce code
        """
        user = User.query.filter_by(company_code=company_code).order_by(User.created_at).first()
        if user is not None:
            return float(user.credit_limit or 0)

        customer = Customer.query.filter_by(company_code=company_code).order_by(Customer.created_at).first()
        if customer is not None:
            return float(customer.credit_limit or 0)

        raise NotFoundError("Customer / User record not found")

    @classmethod
    def credit_check(cls, company_code, cart_value=None) -> Dict[str, Any]:
        """
        Encours des factures en attente et capacité de checkout

        canCheckout = encours + panier <= limite; overBy = dépassement
        """
        if not company_code:
            raise ValidationError("companyCode is required")

        credit_limit = cls.credit_limit_for(company_code)

        pending = Invoice.query.filter(
            Invoice.company_code == company_code,
            Invoice.payment_status == InvoicePaymentStatus.PENDING.value
        ).order_by(Invoice.issued_at).all()

        invoices = []
        outstanding = 0.0
        for invoice in pending:
            total = float(invoice.final_total or 0)
            outstanding += total
            invoices.append({
                'invoiceId': invoice.id,
                'orderNumber': ((invoice.order_snapshot or {}).get('order') or {}).get('orderNumber'),
                'finalTotal': total,
                'dueDate': iso(invoice.due_date),
                'customerName': invoice.customer_name
            })

        outstanding = round_money(outstanding)
        cart = to_float(cart_value, 0) or 0
        projected = round_money(outstanding + cart)
        will_exceed = projected > credit_limit

        result = {
            'invoices': invoices,
            'outstanding': outstanding,
            'creditLimit': credit_limit,
            'remainingCredit': round_money(credit_limit - outstanding),
            'canCheckout': not will_exceed,
            'overBy': round_money(projected - credit_limit) if will_exceed else 0
        }
        if cart_value is not None:
            result['cartValue'] = cart
        return result

    @staticmethod
    def profit_and_loss(from_date=None, to_date=None, company_code=None) -> Dict[str, Any]:
        """
        Revenus = factures de la période (hors annulées / supprimées)
        Dépenses = dépenses globales de la période, par code comptable
        """
        start = parse_date(from_date)
        end = parse_date(to_date)

        invoices = Invoice.query
        if start:
            invoices = invoices.filter(Invoice.invoice_date >= start)
        if end:
            invoices = invoices.filter(Invoice.invoice_date <= end)
        if company_code:
            invoices = invoices.filter(Invoice.company_code == company_code)

        total_income = sum(
            float(inv.final_total or 0) for inv in invoices.all()
            if inv.payment_status != InvoicePaymentStatus.CANCELLED.value and not inv.deleted
        )

        # Les dépenses ne sont pas rattachées à un client
        expenses = Expense.query.filter(db.or_(Expense.deleted.is_(False), Expense.deleted.is_(None)))
        if start:
            expenses = expenses.filter(Expense.date >= start)
        if end:
            expenses = expenses.filter(Expense.date <= end)

        groups = OrderedDict()
        total_expenses = 0.0
        for expense in expenses.order_by(Expense.date).all():
            key = expense.account_code or expense.category or 'Uncategorized'
            if key not in groups:
                groups[key] = {
                    'accountCode': expense.account_code or None,
                    'category': expense.category or 'Uncategorized',
                    'total': 0.0
                }
            amount = float(expense.amount or 0)
            groups[key]['total'] += amount
            total_expenses += amount

        for group in groups.values():
            group['total'] = round_money(group['total'])

        total_income = round_money(total_income)
        total_expenses = round_money(total_expenses)

        return {
            'scope': f"Company: {company_code}" if company_code else 'Global',
            'fromDate': from_date,
            'toDate': to_date,
            'totalIncome': total_income,
            'totalExpenses': total_expenses,
            'netProfit': round_money(total_income - total_expenses),
            'expensesByCategory': list(groups.values())
        }

    @staticmethod
    def final_total(order_total, card_or_cash: Optional[str] = None, returnable_total=None) -> Dict[str, str]:
        """
        Recalcul du total final

        1. base HT = total x (1 - 0.15)
        2. moins les consignes (HT)
        3. TVA 15% recalculée
        4. paiement carte: + 2.95% + 0.50
        """
        total = to_float(order_total)
        if not total:
            raise ValidationError("Missing orderTotal")

        total = Decimal(str(total))
        returnables = Decimal(str(to_float(returnable_total, 0) or 0))

        base = total * (1 - VAT_RATE)
        subtotal = base - returnables
        vat = subtotal * VAT_RATE
        adjusted = subtotal + vat

        fee = Decimal('0')
        if card_or_cash == 'card':
            fee = adjusted * CARD_FEE_RATE + CARD_FEE_FIXED
            adjusted += fee

        return {
            'originalTotal': format_money(total),
            'subtotalBeforeVAT': format_money(base),
            'returnablesDeducted': format_money(returnables),
            'newSubtotalExclVAT': format_money(subtotal),
            'recalculatedVAT': format_money(vat),
            'yocoFee': format_money(fee),
            'finalTotal': format_money(adjusted),
            'paymentMethod': card_or_cash or 'N/A'
        }
