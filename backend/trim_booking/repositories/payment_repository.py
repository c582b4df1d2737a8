# backend/trim_booking/repositories/payment_repository.py
"""
Payment repository for deposit intents.

Intent ids are globally unique, so webhook lookups are not tenant-scoped;
the caller verifies the business afterwards.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.payment import Payment
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class PaymentRepository(BaseRepository[Payment]):
    def __init__(self, db: Session):
        super().__init__(db, Payment)

    def get_payment_by_intent_id(self, payment_intent_id: str) -> Optional[Payment]:
        """
        Get payment record by Stripe payment intent ID, with its booking loaded.

        Args:
            payment_intent_id: Stripe payment intent ID

        Returns:
            Payment if found, None otherwise
        """
        try:
            return (
                self.db.query(Payment)
                .options(joinedload(Payment.booking))
                .filter(Payment.stripe_payment_intent_id == payment_intent_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to get payment by intent {payment_intent_id}: {str(e)}")
            raise RepositoryException(f"Failed to get payment record: {str(e)}")

    def get_payment_by_booking_id(self, booking_id: str) -> Optional[Payment]:
        try:
            return self.db.query(Payment).filter(Payment.booking_id == booking_id).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to get payment for booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to get payment record: {str(e)}")
