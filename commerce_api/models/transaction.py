"""
Modèle InitTransaction - Transactions de paiement initialisées
Le numéro à 8 chiffres sert de référence marchand auprès de la passerelle
"""

from commerce_api import db
from datetime import datetime
import uuid


class InitTransaction(db.Model):
    """Transaction en attente de paiement"""
    __tablename__ = 'init_transactions'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    transaction_number = db.Column(db.String(8), unique=True, nullable=False)

    payment_status = db.Column(db.String(20), default='Pending')
    order_number = db.Column(db.String(50))
    company_code = db.Column(db.String(50))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'transactionNumber': self.transaction_number,
            'paymentStatus': self.payment_status,
            'orderNumber': self.order_number,
            'companyCode': self.company_code,
            'createdAt': self.created_at.isoformat() if self.created_at else None
        }
