"""
Modèle Invoice - Factures clients
Une facture par commande au maximum, numérotée via un compteur global
"""

from commerce_api import db
from commerce_api.models.enums import InvoicePaymentStatus
from datetime import datetime


class Invoice(db.Model):
    """
    Facture émise pour une commande

    order_snapshot est une copie figée de la commande au moment de
    l'émission; elle n'est jamais recalculée.
    """
    __tablename__ = 'invoices'

    # Identifiant: inv_<sequence>_<orderId>
    id = db.Column(db.String(120), primary_key=True)

    # Numéro de facture unique (ex: INV-000042)
    invoice_number = db.Column(db.String(20), unique=True, nullable=False)

    # Commande associée (au plus une facture par commande)
    order_id = db.Column(db.String(64), unique=True, index=True)

    # Statut: issued
    status = db.Column(db.String(20), default='issued')

    # Données comptables
    company_code = db.Column(db.String(50), index=True)
    customer_name = db.Column(db.String(150))
    final_total = db.Column(db.Numeric(18, 2, asdecimal=False), default=0)
    payment_status = db.Column(db.String(20), default=InvoicePaymentStatus.PENDING.value)
    invoice_date = db.Column(db.Date, default=datetime.utcnow)
    due_date = db.Column(db.Date)
    invoice_pdf_url = db.Column(db.String(500))
    deleted = db.Column(db.Boolean, default=False)

    # Snapshot de la commande
    order_snapshot = db.Column(db.JSON, default=dict)

    # Métadonnées
    issued_at = db.Column(db.DateTime, default=datetime.utcnow)
    generated_by = db.Column(db.String(100))

    def to_dict(self):
        """Sérialisation en dictionnaire"""
        return {
            'docId': self.id,
            'invoice': {
                'invoiceId': self.id,
                'invoiceNumber': self.invoice_number,
                'orderId': self.order_id,
                'status': self.status
            },
            'customer': {
                'companyCode': self.company_code,
                'name': self.customer_name
            },
            'finalTotals': {
                'finalTotal': self.final_total
            },
            'payment_status': self.payment_status,
            'invoiceDate': self.invoice_date.isoformat() if self.invoice_date else None,
            'dueDate': self.due_date.isoformat() if self.due_date else None,
            'invoicePDFURL': self.invoice_pdf_url,
            'deleted': self.deleted,
            'order_snapshot': dict(self.order_snapshot or {}),
            'timestamps': {
                'issuedAt': self.issued_at.isoformat() if self.issued_at else None
            }
        }


class InvoiceCounter(db.Model):
    """
    Compteur de séquence (document system_counters/<name>)
    Incrémenté sous verrou de ligne uniquement
    """
    __tablename__ = 'system_counters'

    name = db.Column(db.String(50), primary_key=True)
    last = db.Column(db.Integer, nullable=False, default=0)
