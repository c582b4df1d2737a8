# backend/trim_booking/repositories/barber_repository.py
"""
Barber repository: barbers, their weekly windows and their breaks.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.barber import AvailabilityWindow, Barber, BarberBreak
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BarberRepository(BaseRepository[Barber]):
    def __init__(self, db: Session):
        super().__init__(db, Barber)

    def get_window_for_day(self, barber_id: str, day_of_week: int) -> Optional[AvailabilityWindow]:
        """
        Get the working window for a weekday.

        Args:
            barber_id: The barber ID
            day_of_week: 0=Monday ... 6=Sunday (date.weekday())

        Returns:
            The window, or None if the barber has none for that day
        """
        try:
            return (
                self.db.query(AvailabilityWindow)
                .filter(
                    AvailabilityWindow.barber_id == barber_id,
                    AvailabilityWindow.day_of_week == day_of_week,
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting window for barber {barber_id}: {str(e)}")
            raise RepositoryException(f"Failed to get availability: {str(e)}")

    def get_breaks(self, barber_id: str) -> List[BarberBreak]:
        try:
            return (
                self.db.query(BarberBreak)
                .filter(BarberBreak.barber_id == barber_id)
                .order_by(BarberBreak.start_time)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting breaks for barber {barber_id}: {str(e)}")
            raise RepositoryException(f"Failed to get breaks: {str(e)}")

    def lock_row(self, barber_id: str) -> Optional[Barber]:
        """SELECT ... FOR UPDATE on the barber row; held until the transaction ends."""
        try:
            return (
                self.db.query(Barber)
                .filter(Barber.id == barber_id)
                .with_for_update()
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking barber {barber_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock barber: {str(e)}")
