"""
Modèle Cart - Paniers actifs et paniers abandonnés
Un panier par utilisateur; les lignes en promotion détiennent une
réservation de stock chez le catalogue externe (sale_qty)
"""

from commerce_api import db
from datetime import datetime
import uuid


def _iso(value):
    return value.isoformat() if value else None


EMPTY_TOTALS = {
    'subtotal_excl': 0,
    'subtotal_incl': 0,
    'rebate_amount': 0,
    'sale_savings_excl': 0,
    'deposit_total_excl': 0,
    'vat_total': 0,
    'final_excl': 0,
    'final_incl': 0
}


class Cart(db.Model):
    """
    Panier actif d'un utilisateur (clé = user_id)
    """
    __tablename__ = 'carts'

    user_id = db.Column(db.String(128), primary_key=True)
    cart_id = db.Column(db.String(150), nullable=False)
    status = db.Column(db.String(20), default='active')

    # Lignes: product_unique_id, selected_variant, qty, sale_qty, regular_qty...
    items = db.Column(db.JSON, default=list)
    totals = db.Column(db.JSON, default=dict)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    @classmethod
    def new_for(cls, user_id):
        """Panier vide (non persisté)"""
        now = datetime.utcnow()
        return cls(
            user_id=user_id,
            cart_id=f"CART-{user_id}",
            status='active',
            items=[],
            totals=dict(EMPTY_TOTALS),
            created_at=now,
            updated_at=now
        )

    def to_dict(self):
        """Sérialisation au format document"""
        return {
            'cart': {
                'cart_id': self.cart_id,
                'user_id': self.user_id,
                'status': self.status
            },
            'items': list(self.items or []),
            'totals': dict(self.totals or EMPTY_TOTALS),
            'timestamps': {
                'createdAt': _iso(self.created_at),
                'updatedAt': _iso(self.updated_at)
            }
        }


class AbandonedCart(db.Model):
    """
    Copie d'un panier récupéré après la fenêtre d'inactivité
    """
    __tablename__ = 'carts_abandoned'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(128), nullable=False, index=True)

    # Document complet du panier au moment de la récupération
    document = db.Column(db.JSON, nullable=False)

    reclaimed_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            **(self.document or {}),
            'reclaimedAt': _iso(self.reclaimed_at)
        }
