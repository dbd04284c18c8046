"""
Fonctions utilitaires
Helpers réutilisables dans toute l'application
"""

from datetime import datetime, date
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
import math


def round_money(value, places=2):
    """
    Arrondi monétaire (demi supérieur), retourne un float

    Args:
        value: Montant (int, float, str ou Decimal)
        places: Nombre de décimales

    Returns:
        float: Montant arrondi
    """
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value or 0)).quantize(quantum, rounding=ROUND_HALF_UP))


def format_money(value):
    """Montant formaté à 2 décimales ("86.25")"""
    return f"{Decimal(str(value or 0)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)}"


def to_float(value, default=None):
    """
    Convertit en float fini, ou retourne default
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def parse_date(value):
    """
    Parse une date ISO (YYYY-MM-DD ou datetime ISO)

    Returns:
        date ou None si la valeur est vide / invalide
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00')).date()
    except ValueError:
        return None


def iso(value):
    return value.isoformat() if value else None
