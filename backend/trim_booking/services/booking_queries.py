# backend/trim_booking/services/booking_queries.py
"""
Read-only booking lists: a customer's history and a barber's bookings.

Both are tenant-scoped. "Today" is the business's local date, so an
evening booking in Dublin does not slip into the past early because the
server clock runs on UTC.
"""

from datetime import date, datetime
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.constants import BOOKING_SCOPE_ALL, BOOKING_SCOPE_PAST, BOOKING_SCOPE_UPCOMING
from ..core.exceptions import NotFoundException, ValidationException
from ..core.tenant import TenantContext
from ..core.timezone_utils import business_today
from ..models.booking import Booking
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

BOOKING_SCOPES = (BOOKING_SCOPE_ALL, BOOKING_SCOPE_UPCOMING, BOOKING_SCOPE_PAST)


class BookingQueryService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)
        self.barber_repository = RepositoryFactory.create_barber_repository(db)

    @BaseService.measure_operation("list_customer_bookings")
    def list_customer_bookings(
        self,
        tenant: TenantContext,
        customer_id: str,
        scope: str = BOOKING_SCOPE_ALL,
        now: Optional[datetime] = None,
    ) -> List[Booking]:
        """
        A customer's bookings in this business.

        Scopes:
            all: every booking, oldest first
            upcoming: today onwards, cancelled ones left out, nearest first
            past: before today in any status, most recent first

        Raises:
            ValidationException: Unknown scope
            NotFoundException: Customer not in this tenant
        """
        if scope not in BOOKING_SCOPES:
            raise ValidationException(
                f"Unknown booking scope: {scope}",
                code="INVALID_SCOPE",
                details={"allowed": list(BOOKING_SCOPES)},
            )
        if self.user_repository.get_in_business(customer_id, tenant.business_id) is None:
            raise NotFoundException("Customer not found", code="CUSTOMER_NOT_FOUND")

        today = business_today(tenant.timezone, now)
        if scope == BOOKING_SCOPE_UPCOMING:
            return self.booking_repository.find_for_customer(
                tenant.business_id, customer_id, from_date=today, exclude_cancelled=True
            )
        if scope == BOOKING_SCOPE_PAST:
            return self.booking_repository.find_for_customer(
                tenant.business_id, customer_id, before_date=today, newest_first=True
            )
        return self.booking_repository.find_for_customer(tenant.business_id, customer_id)

    @BaseService.measure_operation("list_barber_bookings")
    def list_barber_bookings(
        self,
        tenant: TenantContext,
        barber_id: str,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> List[Booking]:
        """Every booking of a barber (inactive barbers included), optionally within a date range."""
        if from_date is not None and to_date is not None and from_date > to_date:
            raise ValidationException(
                "from_date must not be after to_date", code="INVALID_DATE_RANGE"
            )
        if self.barber_repository.get_in_business(barber_id, tenant.business_id) is None:
            raise NotFoundException("Barber not found", code="BARBER_NOT_FOUND")
        return self.booking_repository.find_for_barber(
            tenant.business_id, barber_id, from_date=from_date, to_date=to_date
        )
