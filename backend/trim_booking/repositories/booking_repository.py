# backend/trim_booking/repositories/booking_repository.py
"""
Booking repository.

Conflict queries run per (barber, date) and skip CANCELLED rows, which is
the set the overlap invariant ranges over. Callers that need the result to
stay true until commit must hold barber_day_lock first.
"""

from datetime import date, datetime
import logging
from typing import List, Optional, Tuple, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.booking import Booking, BookingStatus, PaymentStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking data access."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def get_booking_with_details(self, booking_id: str, business_id: str) -> Optional[Booking]:
        """
        Get a tenant-scoped booking with customer, barber, service and payment loaded.

        Args:
            booking_id: The booking ID
            business_id: Business the booking must belong to

        Returns:
            Booking with relationships or None
        """
        try:
            return cast(
                Optional[Booking],
                self._with_details(self.db.query(Booking))
                .filter(Booking.id == booking_id, Booking.business_id == business_id)
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to get booking: {str(e)}")

    def get_for_update(self, booking_id: str) -> Optional[Booking]:
        """Row-locking load used by per-item transactions (sweeper, callbacks)."""
        try:
            return cast(
                Optional[Booking],
                self.db.query(Booking)
                .filter(Booking.id == booking_id)
                .populate_existing()
                .with_for_update()
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to lock booking: {str(e)}")

    def find_active_for_barber_day(
        self,
        business_id: str,
        barber_id: str,
        booking_date: date,
        exclude_booking_id: Optional[str] = None,
        with_details: bool = False,
    ) -> List[Booking]:
        """
        Get every non-cancelled booking for a barber on a date, ordered by start.

        Args:
            business_id: Tenant the barber belongs to
            barber_id: The barber ID
            booking_date: Local date in the business timezone
            exclude_booking_id: Booking to leave out (reschedule of itself)
            with_details: Eager load customer and service for schedule views
        """
        try:
            query = self.db.query(Booking).filter(
                Booking.business_id == business_id,
                Booking.barber_id == barber_id,
                Booking.booking_date == booking_date,
                Booking.status != BookingStatus.CANCELLED.value,
            )
            if exclude_booking_id:
                query = query.filter(Booking.id != exclude_booking_id)
            if with_details:
                query = self._with_details(query)

            return cast(List[Booking], query.order_by(Booking.start_time).all())

        except SQLAlchemyError as e:
            self.logger.error(f"Error getting bookings for barber day: {str(e)}")
            raise RepositoryException(f"Failed to get bookings: {str(e)}")

    def find_expired_pending(self, now: datetime, limit: int = 500) -> List[Tuple[str, str]]:
        """
        Get (booking_id, business_id) pairs whose deposit hold has lapsed.

        Spans all tenants. Ids only: each row is re-loaded and re-checked in
        its own transaction by the caller.
        """
        try:
            rows = (
                self.db.query(Booking.id, Booking.business_id)
                .filter(
                    Booking.status == BookingStatus.PENDING.value,
                    Booking.payment_status == PaymentStatus.DEPOSIT_PENDING.value,
                    Booking.expires_at.isnot(None),
                    Booking.expires_at <= now,
                )
                .order_by(Booking.expires_at)
                .limit(limit)
                .all()
            )
            return [(row[0], row[1]) for row in rows]
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding expired bookings: {str(e)}")
            raise RepositoryException(f"Failed to find expired bookings: {str(e)}")

    def find_for_customer(
        self,
        business_id: str,
        customer_id: str,
        from_date: Optional[date] = None,
        before_date: Optional[date] = None,
        exclude_cancelled: bool = False,
        newest_first: bool = False,
    ) -> List[Booking]:
        """
        Get a customer's bookings in one business, ordered by date and start.

        Args:
            from_date: Keep bookings on or after this local date
            before_date: Keep bookings strictly before this local date
            exclude_cancelled: Leave CANCELLED rows out
            newest_first: Reverse the ordering
        """
        try:
            query = self._with_details(self.db.query(Booking)).filter(
                Booking.business_id == business_id,
                Booking.customer_id == customer_id,
            )
            if from_date is not None:
                query = query.filter(Booking.booking_date >= from_date)
            if before_date is not None:
                query = query.filter(Booking.booking_date < before_date)
            if exclude_cancelled:
                query = query.filter(Booking.status != BookingStatus.CANCELLED.value)

            if newest_first:
                query = query.order_by(Booking.booking_date.desc(), Booking.start_time.desc())
            else:
                query = query.order_by(Booking.booking_date, Booking.start_time)
            return cast(List[Booking], query.all())

        except SQLAlchemyError as e:
            self.logger.error(f"Error getting bookings for customer {customer_id}: {str(e)}")
            raise RepositoryException(f"Failed to get customer bookings: {str(e)}")

    def find_for_barber(
        self,
        business_id: str,
        barber_id: str,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> List[Booking]:
        """Get a barber's bookings in any status, optionally within [from_date, to_date]."""
        try:
            query = self._with_details(self.db.query(Booking)).filter(
                Booking.business_id == business_id,
                Booking.barber_id == barber_id,
            )
            if from_date is not None:
                query = query.filter(Booking.booking_date >= from_date)
            if to_date is not None:
                query = query.filter(Booking.booking_date <= to_date)
            return cast(
                List[Booking], query.order_by(Booking.booking_date, Booking.start_time).all()
            )

        except SQLAlchemyError as e:
            self.logger.error(f"Error getting bookings for barber {barber_id}: {str(e)}")
            raise RepositoryException(f"Failed to get barber bookings: {str(e)}")

    def find_due_for_reminder(self, business_id: str, booking_date: date) -> List[Booking]:
        """Get PENDING and CONFIRMED bookings of one business on a local date."""
        try:
            return cast(
                List[Booking],
                self.db.query(Booking)
                .filter(
                    Booking.business_id == business_id,
                    Booking.booking_date == booking_date,
                    Booking.status.in_(
                        [BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value]
                    ),
                )
                .order_by(Booking.start_time)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding bookings to remind: {str(e)}")
            raise RepositoryException(f"Failed to find bookings to remind: {str(e)}")

    def _with_details(self, query: Query) -> Query:
        return query.options(
            joinedload(Booking.customer),
            joinedload(Booking.barber),
            joinedload(Booking.service),
            joinedload(Booking.payment),
        )
