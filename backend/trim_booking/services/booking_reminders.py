# backend/trim_booking/services/booking_reminders.py
"""
Day-ahead reminders for PENDING and CONFIRMED bookings.

Runs across all tenants from Celery beat. "Tomorrow" is taken per
business timezone. Reminders go through the notification dispatcher like
every other booking event, so delivery, retries and dedup live in the
notification task.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.constants import EVENT_BOOKING_REMINDER
from ..core.timezone_utils import business_today, utc_now
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)


@dataclass
class ReminderResult:
    queued: int = 0
    failed: int = 0
    booking_ids: List[str] = field(default_factory=list)


class BookingReminderService(BaseService):
    def __init__(self, db: Session, dispatcher: Optional[NotificationDispatcher] = None):
        super().__init__(db)
        self.business_repository = RepositoryFactory.create_business_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.dispatcher = dispatcher or NotificationDispatcher()

    @BaseService.measure_operation("send_booking_reminders")
    def send_reminders(self, now: Optional[datetime] = None) -> ReminderResult:
        """
        Queue a reminder for every live booking on each business's next local day.

        Lapsed deposit holds are skipped.
        """
        reference = now or utc_now()
        result = ReminderResult()

        for business in self.business_repository.list_all():
            tomorrow = business_today(business.timezone, reference) + timedelta(days=1)
            for booking in self.booking_repository.find_due_for_reminder(business.id, tomorrow):
                if booking.is_expired(reference):
                    continue
                if self.dispatcher.booking_event(EVENT_BOOKING_REMINDER, booking.id, business.id):
                    result.queued += 1
                    result.booking_ids.append(booking.id)
                else:
                    result.failed += 1

        self.logger.info(
            f"Reminder run finished: {result.queued} queued, {result.failed} failed",
            extra={"queued": result.queued, "failed": result.failed},
        )
        return result
