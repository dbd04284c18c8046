"""
Modèles Comptabilité - Dépenses
Pour le rapport de résultat (P&L)
"""

from commerce_api import db
from datetime import datetime
import uuid


class Expense(db.Model):
    """
    Dépense générale de l'entreprise (loyer, carburant, salaires...)
    Regroupée par code comptable ou par catégorie dans le P&L
    """
    __tablename__ = 'expenses'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    account_code = db.Column(db.String(30))
    category = db.Column(db.String(50))
    description = db.Column(db.String(255))
    amount = db.Column(db.Numeric(18, 2, asdecimal=False), nullable=False)

    # Date de la dépense
    date = db.Column(db.Date, nullable=False, default=datetime.utcnow)

    deleted = db.Column(db.Boolean, default=False)

    # Métadonnées
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    created_by = db.Column(db.String(128))

    def to_dict(self):
        return {
            'id': self.id,
            'accountCode': self.account_code,
            'category': self.category,
            'description': self.description,
            'amount': self.amount,
            'date': self.date.isoformat() if self.date else None,
            'deleted': self.deleted,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
