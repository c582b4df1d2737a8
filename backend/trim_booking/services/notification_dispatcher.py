"""
Best-effort hand-off of booking events to the notification worker.

Called only after the booking transaction has committed. A broker outage
must never undo or fail a booking change, so enqueue errors are logged
and counted here instead of propagating.
"""

import logging
from typing import Any, Callable, Optional

from ..monitoring.prometheus_metrics import prometheus_metrics
from ..tasks.enqueue import enqueue_task

logger = logging.getLogger(__name__)

SEND_BOOKING_NOTIFICATION_TASK = "trim_booking.tasks.notification_tasks.send_booking_notification"


class NotificationDispatcher:
    def __init__(self, enqueue: Optional[Callable[..., Any]] = None):
        self._enqueue = enqueue

    def booking_event(self, event_type: str, booking_id: str, business_id: Optional[str] = None) -> bool:
        """Queue a notification for a booking event; returns False if it could not be queued."""
        enqueue = self._enqueue or enqueue_task
        try:
            enqueue(SEND_BOOKING_NOTIFICATION_TASK, args=(event_type, booking_id))
        except Exception as exc:
            prometheus_metrics.record_notification_dispatch(event_type, "failed")
            logger.warning(
                "Failed to enqueue booking notification",
                extra={
                    "event_type": event_type,
                    "booking_id": booking_id,
                    "business_id": business_id,
                    "error": str(exc),
                },
            )
            return False

        prometheus_metrics.record_notification_dispatch(event_type, "queued")
        logger.info(
            "Booking notification queued",
            extra={"event_type": event_type, "booking_id": booking_id, "business_id": business_id},
        )
        return True
