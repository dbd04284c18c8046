"""
Modèle Payment - Paiements des clients
Un paiement est indépendant des commandes; son solde restant
est dérivé des allocations
"""

from commerce_api import db
from commerce_api.models.enums import PaymentStatus
from datetime import datetime
import uuid


def _iso(value):
    return value.isoformat() if value else None


class Payment(db.Model):
    """
    Paiement encaissé (espèces, virement, terminal carte)

    remaining_amount_incl = amount_incl - somme(allocations), jamais négatif
    """
    __tablename__ = 'payments'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Client
    customer_id = db.Column(db.String(128), nullable=False, index=True)
    customer_code = db.Column(db.String(50))

    # Montant
    method = db.Column(db.String(30), nullable=False)  # cash, eft, card_machine
    amount_incl = db.Column(db.Numeric(18, 2, asdecimal=False), nullable=False)
    remaining_amount_incl = db.Column(db.Numeric(18, 2, asdecimal=False), nullable=False)
    currency = db.Column(db.String(3), default='ZAR')

    # Statut: unallocated, partially_allocated, allocated
    status = db.Column(db.String(30), default=PaymentStatus.UNALLOCATED.value)

    # Référence externe et notes
    reference = db.Column(db.String(100))
    note = db.Column(db.Text)

    # Preuve de paiement
    proof_type = db.Column(db.String(30))
    proof_url = db.Column(db.String(500))

    # Métadonnées
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)
    created_by = db.Column(db.String(128))

    # Relations
    allocations = db.relationship(
        'PaymentAllocation',
        backref='payment',
        cascade='all, delete-orphan',
        order_by='PaymentAllocation.allocated_at'
    )

    @property
    def allocated_incl(self):
        return round(sum(float(a.amount_incl or 0) for a in self.allocations), 2)

    def proof_dict(self):
        if not self.proof_type and not self.proof_url:
            return None
        return {'type': self.proof_type, 'url': self.proof_url}

    def to_dict(self):
        """Sérialisation au format document"""
        return {
            'docId': self.id,
            'payment': {
                'method': self.method,
                'amount_incl': self.amount_incl,
                'remaining_amount_incl': self.remaining_amount_incl,
                'currency': self.currency,
                'status': self.status,
                'reference': self.reference,
                'note': self.note
            },
            'customer': {
                'customerId': self.customer_id,
                'customerCode': self.customer_code
            },
            'proof': self.proof_dict(),
            'allocations': [a.to_dict() for a in self.allocations],
            'timestamps': {
                'createdAt': _iso(self.created_at),
                'updatedAt': _iso(self.updated_at)
            },
            'meta': {
                'createdBy': self.created_by
            }
        }


class PaymentAllocation(db.Model):
    """
    Part d'un paiement affectée à une commande / facture
    """
    __tablename__ = 'payment_allocations'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    payment_id = db.Column(db.String(36), db.ForeignKey('payments.id'), nullable=False, index=True)

    # Cible
    order_id = db.Column(db.String(64), index=True)
    order_number = db.Column(db.String(50))
    invoice_id = db.Column(db.String(120), index=True)
    company_code = db.Column(db.String(50))

    amount_incl = db.Column(db.Numeric(18, 2, asdecimal=False), nullable=False)
    status = db.Column(db.String(20), default='applied')

    allocated_at = db.Column(db.DateTime, default=datetime.utcnow)
    created_by = db.Column(db.String(128))

    def to_dict(self):
        return {
            'allocationId': self.id,
            'orderId': self.order_id,
            'orderNumber': self.order_number,
            'invoiceId': self.invoice_id,
            'amount_incl': self.amount_incl,
            'allocatedAt': _iso(self.allocated_at)
        }
