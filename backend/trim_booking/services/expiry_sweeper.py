# backend/trim_booking/services/expiry_sweeper.py
"""
Expiry Sweeper: releases slots held by unpaid online bookings.

Runs across all tenants from Celery beat. Each booking is cancelled in
its own transaction so that one bad row never blocks the rest of the
batch, and the row is re-checked after it is re-loaded in case the
deposit landed between the scan and the update.
"""

from dataclasses import dataclass, field
from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.constants import EVENT_BOOKING_EXPIRED
from ..core.timezone_utils import utc_now
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .booking_lifecycle import BookingLifecycle
from .notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)

EXPIRY_REASON = "Payment window expired"


@dataclass
class SweepResult:
    cancelled: int = 0
    failed: int = 0
    cancelled_ids: List[str] = field(default_factory=list)


class ExpirySweeper(BaseService):
    def __init__(
        self,
        db: Session,
        lifecycle: Optional[BookingLifecycle] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        batch_size: int = 500,
    ):
        super().__init__(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.lifecycle = lifecycle or BookingLifecycle()
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.batch_size = batch_size

    @BaseService.measure_operation("sweep_expired_bookings")
    def sweep(self, now: Optional[datetime] = None) -> SweepResult:
        """
        Cancel every PENDING/DEPOSIT_PENDING booking whose hold lapsed at or before now.

        Returns:
            Counts of cancelled and failed bookings plus the cancelled ids
        """
        reference = now or utc_now()
        result = SweepResult()
        candidates = self.booking_repository.find_expired_pending(reference, limit=self.batch_size)
        # Release the scan's read transaction before per-row work
        self.db.rollback()

        for booking_id, business_id in candidates:
            try:
                with self.transaction():
                    booking = self.booking_repository.get_for_update(booking_id)
                    if booking is None or not booking.is_expired(reference):
                        continue
                    self.lifecycle.cancel(booking, reason=EXPIRY_REASON)
            except Exception as exc:
                result.failed += 1
                prometheus_metrics.inc_booking_expired("failed")
                self.logger.error(
                    f"Failed to expire booking: {str(exc)}",
                    extra={"booking_id": booking_id, "business_id": business_id},
                    exc_info=True,
                )
                continue

            result.cancelled += 1
            result.cancelled_ids.append(booking_id)
            prometheus_metrics.inc_booking_expired("cancelled")
            self.dispatcher.booking_event(EVENT_BOOKING_EXPIRED, booking_id, business_id)

        self.logger.info(
            f"Expiry sweep finished: {result.cancelled} cancelled, {result.failed} failed",
            extra={
                "candidates": len(candidates),
                "cancelled": result.cancelled,
                "failed": result.failed,
            },
        )
        return result
