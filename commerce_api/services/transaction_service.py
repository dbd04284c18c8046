"""
Service Transactions - Numéros de transaction initiale
Numéro aléatoire à 8 chiffres, unicité vérifiée dans un savepoint
"""

import logging
import random
from typing import Callable, Optional, Dict, Any

from sqlalchemy.exc import IntegrityError

from commerce_api import db
from commerce_api.models import InitTransaction

logger = logging.getLogger(__name__)


MAX_ATTEMPTS = 12


class TransactionNumberCollision(Exception):
    """Le numéro tiré existe déjà"""


class TransactionCreationError(Exception):
    """Aucun numéro libre après MAX_ATTEMPTS tirages"""


def generate_transaction_number() -> str:
    """8 chiffres, sans zéro initial"""
    return str(random.randint(10000000, 99999999))


class TransactionService:
    """Création des transactions initiales"""

    @staticmethod
    def create(order_number: Optional[str] = None, company_code: Optional[str] = None,
               number_factory: Callable[[], str] = generate_transaction_number) -> Dict[str, Any]:
        """
        Tire un numéro, vérifie qu'il est libre et insère la transaction.
        Seule une collision provoque un nouveau tirage; toute autre erreur
        est propagée immédiatement.
        """
        for attempt in range(1, MAX_ATTEMPTS + 1):
            number = number_factory()
            try:
                with db.session.begin_nested():
                    if InitTransaction.query.filter_by(transaction_number=number).first() is not None:
                        raise TransactionNumberCollision(number)

                    transaction = InitTransaction(
                        transaction_number=number,
                        payment_status='Pending',
                        order_number=order_number,
                        company_code=company_code
                    )
                    db.session.add(transaction)
                    db.session.flush()
            except (TransactionNumberCollision, IntegrityError):
                logger.warning(f"Transaction number {number} collision (attempt {attempt}/{MAX_ATTEMPTS})")
                continue

            db.session.commit()
            logger.info(f"Init transaction {number} created for order {order_number}")
            return {
                'id': transaction.transaction_number,
                'transactionNumber': transaction.transaction_number,
                'paymentStatus': transaction.payment_status,
                'orderNumber': transaction.order_number,
                'companyCode': transaction.company_code,
                'createdAt': transaction.created_at.isoformat() if transaction.created_at else None
            }

        raise TransactionCreationError(
            f"Failed to create init transaction after {MAX_ATTEMPTS} attempts"
        )
