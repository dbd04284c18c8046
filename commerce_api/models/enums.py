"""
Enums - Types énumérés pour les modèles
=======================================

Centralise tous les types énumérés pour éviter les "magic strings"
et garantir la cohérence des données.
"""

import enum


class OrderStatus(enum.Enum):
    """Statuts possibles d'une commande"""
    DRAFT = 'draft'              # Brouillon
    CONFIRMED = 'confirmed'      # Confirmée
    PROCESSING = 'processing'    # En préparation
    DISPATCHED = 'dispatched'    # Expédiée
    COMPLETED = 'completed'      # Terminée (terminal)
    CANCELLED = 'cancelled'      # Annulée (terminal)

    @classmethod
    def values(cls) -> list:
        return [s.value for s in cls]

    @classmethod
    def is_valid(cls, status: str) -> bool:
        """Vérifie si un statut est valide"""
        return status in cls.values()

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        """Les statuts terminaux verrouillent la commande"""
        return status in [cls.COMPLETED.value, cls.CANCELLED.value]

    @classmethod
    def default_reason(cls, status: str) -> str:
        """Raison par défaut enregistrée lors d'un changement de statut"""
        reasons = {
            'draft': 'Order set to draft.',
            'confirmed': 'Order confirmed.',
            'processing': 'Order is being processed.',
            'dispatched': 'Order dispatched.',
            'completed': 'Order completed.',
            'cancelled': 'Order cancelled.'
        }
        return reasons.get(status, 'Order status updated.')


class PaymentMethod(enum.Enum):
    """Méthodes de paiement manuelles"""
    CASH = 'cash'
    EFT = 'eft'
    CARD_MACHINE = 'card_machine'

    @classmethod
    def values(cls) -> list:
        return [m.value for m in cls]

    @classmethod
    def is_valid(cls, method: str) -> bool:
        return method in cls.values()


class PaymentStatus(enum.Enum):
    """Statut d'allocation d'un paiement"""
    UNALLOCATED = 'unallocated'
    PARTIALLY_ALLOCATED = 'partially_allocated'
    ALLOCATED = 'allocated'

    @classmethod
    def compute(cls, amount_incl: float, allocated_incl: float) -> str:
        """Statut dérivé du montant et de la somme allouée"""
        if allocated_incl <= 0:
            return cls.UNALLOCATED.value
        if allocated_incl >= amount_incl:
            return cls.ALLOCATED.value
        return cls.PARTIALLY_ALLOCATED.value


class OrderPaymentStatus(enum.Enum):
    """Statut de paiement d'une commande"""
    UNPAID = 'unpaid'
    PARTIAL = 'partial'
    PAID = 'paid'
    REFUNDED = 'refunded'
    PARTIAL_REFUND = 'partial_refund'

    @classmethod
    def compute(cls, required_incl: float, paid_incl: float) -> str:
        if paid_incl <= 0:
            return cls.UNPAID.value
        if paid_incl + 0.0001 >= required_incl:
            return cls.PAID.value
        return cls.PARTIAL.value

    @classmethod
    def is_refunded(cls, status: str) -> bool:
        return status in [cls.REFUNDED.value, cls.PARTIAL_REFUND.value]


class InvoicePaymentStatus(enum.Enum):
    """Statut de paiement d'une facture (rapports comptables)"""
    PENDING = 'Pending'
    PAID = 'Paid'
    CANCELLED = 'Cancelled'
