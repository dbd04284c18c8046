"""
Modèle Order - Commandes clients
Cycle de vie: statut, verrouillage (editable), facture et paiement
"""

from commerce_api import db
from commerce_api.models.enums import OrderStatus, OrderPaymentStatus
from datetime import datetime
import uuid


def _iso(value):
    return value.isoformat() if value else None


class Order(db.Model):
    """
    Commande créée en amont (checkout)

    orderNumber et merchantTransactionId sont des clés de recherche
    alternatives: elles ne sont pas uniques en base pour que les
    références ambiguës restent détectables.
    """
    __tablename__ = 'orders'

    id = db.Column(db.String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    order_number = db.Column(db.String(50), index=True)
    merchant_transaction_id = db.Column(db.String(100), index=True)
    customer_id = db.Column(db.String(128), index=True)

    # Statut et verrouillage
    status = db.Column(db.String(20), default=OrderStatus.DRAFT.value)
    editable = db.Column(db.Boolean, default=True)
    editable_reason = db.Column(db.String(255))
    cancel_message = db.Column(db.Text)
    cancel_message_at = db.Column(db.DateTime)

    # Contenu (snapshots document)
    items = db.Column(db.JSON, default=list)
    totals = db.Column(db.JSON, default=dict)
    customer_snapshot = db.Column(db.JSON, default=dict)
    delivery = db.Column(db.JSON, default=dict)
    returns = db.Column(db.JSON, default=dict)
    meta = db.Column(db.JSON, default=dict)

    # Paiement
    payment_status = db.Column(db.String(20), default=OrderPaymentStatus.UNPAID.value)
    currency = db.Column(db.String(3), default='ZAR')
    required_amount_incl = db.Column(db.Numeric(18, 2, asdecimal=False))
    paid_amount_incl = db.Column(db.Numeric(18, 2, asdecimal=False), default=0)
    manual_payments = db.Column(db.JSON, default=list)

    # Facture (null tant que non émise)
    invoice_id = db.Column(db.String(120))
    invoice_number = db.Column(db.String(20))
    invoice_status = db.Column(db.String(20))
    invoice_generated_at = db.Column(db.DateTime)
    invoice_generated_by = db.Column(db.String(100))

    # Métadonnées
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)
    locked_at = db.Column(db.DateTime)

    @property
    def is_paid(self):
        return self.payment_status == OrderPaymentStatus.PAID.value

    @property
    def required_incl(self):
        """
        Montant dû TTC: final_payable_incl si présent, sinon final_incl
        moins les retours collectés
        """
        totals = self.totals or {}
        if totals.get('final_payable_incl') is not None:
            return float(totals['final_payable_incl'])

        returns = self.returns or {}
        collected = returns.get('collected_returns_incl')
        if collected is None:
            collected = (returns.get('totals') or {}).get('incl')
        if collected is None:
            collected = totals.get('collected_returns_incl', 0)

        if totals.get('final_incl') is not None:
            return round(float(totals['final_incl']) - float(collected or 0), 2)

        return float(self.required_amount_incl or 0)

    def lock(self, reason, at=None):
        """
        Verrouille la commande. lockedAt n'est posé qu'une fois.
        """
        at = at or datetime.utcnow()
        self.editable = False
        self.editable_reason = reason
        if not self.locked_at:
            self.locked_at = at

    def invoice_dict(self):
        if not self.invoice_id:
            return None
        return {
            'invoiceId': self.invoice_id,
            'invoiceNumber': self.invoice_number,
            'status': self.invoice_status,
            'generatedAt': _iso(self.invoice_generated_at),
            'generatedBy': self.invoice_generated_by
        }

    def reference_dict(self):
        """Identifiants renvoyés par les endpoints du cycle de vie"""
        return {
            'orderId': self.id,
            'orderNumber': self.order_number,
            'merchantTransactionId': self.merchant_transaction_id
        }

    def to_dict(self):
        """Sérialisation au format document"""
        return {
            'docId': self.id,
            'order': {
                'orderNumber': self.order_number,
                'customerId': self.customer_id,
                'merchantTransactionId': self.merchant_transaction_id,
                'status': {
                    'order': self.status,
                    'payment': self.payment_status
                },
                'editable': self.editable,
                'editable_reason': self.editable_reason,
                'cancel_message': self.cancel_message,
                'cancel_message_at': _iso(self.cancel_message_at)
            },
            'items': list(self.items or []),
            'totals': dict(self.totals or {}),
            'customer_snapshot': dict(self.customer_snapshot or {}),
            'delivery': dict(self.delivery or {}),
            'returns': dict(self.returns or {}),
            'meta': dict(self.meta or {}),
            'invoice': self.invoice_dict(),
            'payment': {
                'status': self.payment_status,
                'currency': self.currency,
                'required_amount_incl': self.required_amount_incl,
                'paid_amount_incl': self.paid_amount_incl or 0,
                'manual_payments': list(self.manual_payments or [])
            },
            'timestamps': {
                'createdAt': _iso(self.created_at),
                'updatedAt': _iso(self.updated_at),
                'lockedAt': _iso(self.locked_at)
            }
        }
