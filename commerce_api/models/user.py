from commerce_api import db
from datetime import datetime
import uuid


class User(db.Model):
    """Utilisateur B2B (client ou administrateur) et ses lieux de livraison"""
    __tablename__ = 'users'

    id = db.Column(db.String(128), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = db.Column(db.String(120))

    # Rattachement entreprise
    company_code = db.Column(db.String(50), index=True)
    customer_code = db.Column(db.String(50))
    company_name = db.Column(db.String(150))

    # Limite de crédit (prioritaire sur celle de Customer)
    credit_limit = db.Column(db.Numeric(18, 2, asdecimal=False))

    # Type d'accès: customer, admin
    access_type = db.Column(db.String(20), default='customer')

    # Lieux de livraison (au plus un is_default = true)
    delivery_locations = db.Column(db.JSON, default=list)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_admin(self):
        return self.access_type == 'admin'

    def to_dict(self):
        return {
            'uid': self.id,
            'email': self.email,
            'companyCode': self.company_code,
            'customerCode': self.customer_code,
            'companyName': self.company_name,
            'creditLimit': self.credit_limit,
            'accessType': self.access_type,
            'deliveryLocations': list(self.delivery_locations or []),
            'created_at': (self.created_at.isoformat() + 'Z') if self.created_at else None
        }


class Customer(db.Model):
    """Fiche client entreprise (limite de crédit de repli)"""
    __tablename__ = 'customers'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    company_code = db.Column(db.String(50), index=True, nullable=False)
    name = db.Column(db.String(150))
    credit_limit = db.Column(db.Numeric(18, 2, asdecimal=False), default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'companyCode': self.company_code,
            'name': self.name,
            'creditLimit': self.credit_limit or 0
        }
