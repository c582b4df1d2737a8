# backend/trim_booking/tasks/notification_tasks.py
"""
Celery tasks for booking notifications.

`send_booking_notification` is enqueued by NotificationDispatcher after a
booking change commits. It loads the booking, then hands one message per
channel to the NotificationProvider, which records a delivery row keyed by
(event, booking, occurrence, channel). The occurrence is the Celery task id:
retries of one enqueue share it, so a retried task never sends twice, while a
second enqueue of the same event (say, another reschedule) is delivered again.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from celery.app.task import Task  # noqa: F401 - used for type hints
from celery.utils.log import get_task_logger
from sqlalchemy.orm import Session

from ..database import SessionLocal
from ..models.booking import Booking
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..services.notification_dispatcher import SEND_BOOKING_NOTIFICATION_TASK
from ..services.notification_provider import (
    CHANNEL_EMAIL,
    CHANNEL_SMS,
    NotificationDispatchResult,
    NotificationProvider,
    NotificationProviderTemporaryError,
)
from .celery_app import celery_app

logger = get_task_logger(__name__)

MAX_DELIVERY_ATTEMPTS = 5
BACKOFF_SECONDS = [30, 120, 600, 1800, 7200]


def _next_backoff(attempt_number: int) -> int:
    """Return backoff delay for the given attempt (1-indexed)."""
    index = max(0, min(attempt_number - 1, len(BACKOFF_SECONDS) - 1))
    return BACKOFF_SECONDS[index]


@contextmanager
def _session_scope() -> Iterator[Session]:
    """Provide transactional scope for use in tasks."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def build_notification_payload(event_type: str, booking: Booking) -> Dict[str, Any]:
    return {
        "event_type": event_type,
        "booking_id": booking.id,
        "business_id": booking.business_id,
        "business_name": booking.business.name if booking.business else None,
        "customer_name": booking.customer.full_name if booking.customer else None,
        "barber_name": booking.barber.name if booking.barber else None,
        "service_name": booking.service.name if booking.service else None,
        "booking_date": booking.booking_date.isoformat(),
        "start_time": booking.start_time.strftime("%H:%M"),
        "end_time": booking.end_time.strftime("%H:%M"),
        "status": booking.status,
        "payment_status": booking.payment_status,
        "outstanding_balance": str(booking.outstanding_balance),
        "cancellation_reason": booking.cancellation_reason,
    }


def deliver_booking_notification(
    session: Session,
    event_type: str,
    booking_id: str,
    provider: Optional[NotificationProvider] = None,
    occurrence_id: Optional[str] = None,
) -> List[NotificationDispatchResult]:
    """
    Send email and (when the customer has a phone) SMS for one booking event.

    Each channel commits its own delivery row, so a transient failure on the
    second channel never causes the first to be re-sent on retry.
    `occurrence_id` tells apart repeated events of the same type for one
    booking; without it the key is per (event, booking, channel).
    """
    booking = RepositoryFactory.create_booking_repository(session).get_by_id(booking_id)
    if booking is None:
        logger.warning("Booking %s missing; skipping %s notification", booking_id, event_type)
        return []

    provider = provider or NotificationProvider()
    payload = build_notification_payload(event_type, booking)
    customer = booking.customer
    recipients = {CHANNEL_EMAIL: customer.email if customer else None}
    if customer is not None and customer.phone:
        recipients[CHANNEL_SMS] = customer.phone

    key_prefix = f"{event_type}:{booking_id}"
    if occurrence_id:
        key_prefix = f"{key_prefix}:{occurrence_id}"

    results: List[NotificationDispatchResult] = []
    for channel, recipient in recipients.items():
        if not recipient:
            continue
        results.append(
            provider.send(
                event_type=event_type,
                channel=channel,
                recipient=recipient,
                payload=payload,
                idempotency_key=f"{key_prefix}:{channel}",
            )
        )
    return results


@celery_app.task(
    name=SEND_BOOKING_NOTIFICATION_TASK,
    bind=True,
    max_retries=MAX_DELIVERY_ATTEMPTS,
    default_retry_delay=30,
    queue="notifications",
)
def send_booking_notification(self: "Task[Any, Any]", event_type: str, booking_id: str) -> int:
    """Deliver one booking event; returns the number of channels newly sent."""
    try:
        with _session_scope() as session:
            results = deliver_booking_notification(
                session, event_type, booking_id, occurrence_id=self.request.id
            )
    except NotificationProviderTemporaryError as exc:
        prometheus_metrics.record_notification_dispatch(event_type, "retry")
        attempt_number = self.request.retries + 1
        logger.warning(
            "Notification %s for booking %s failed (attempt %s): %s",
            event_type,
            booking_id,
            attempt_number,
            exc,
        )
        raise self.retry(exc=exc, countdown=_next_backoff(attempt_number))

    sent = sum(1 for result in results if result.created)
    prometheus_metrics.record_notification_dispatch(event_type, "delivered")
    logger.info(
        "Delivered %s for booking %s (%s new, %s channels)",
        event_type,
        booking_id,
        sent,
        len(results),
    )
    return sent
