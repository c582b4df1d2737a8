# backend/trim_booking/tasks/booking_tasks.py
"""
Periodic booking jobs run by Celery beat: the expiry sweep and the
daily reminder run.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator

from celery.utils.log import get_task_logger
from sqlalchemy.orm import Session

from ..database import SessionLocal
from ..services.booking_reminders import BookingReminderService
from ..services.expiry_sweeper import ExpirySweeper
from .beat_schedule import EXPIRE_PENDING_BOOKINGS_TASK, SEND_BOOKING_REMINDERS_TASK
from .celery_app import celery_app

logger = get_task_logger(__name__)


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


@celery_app.task(name=EXPIRE_PENDING_BOOKINGS_TASK, max_retries=0, queue="maintenance")
def expire_pending_bookings(batch_size: int = 500) -> Dict[str, Any]:
    """
    Cancel online bookings whose deposit hold has lapsed, across all tenants.

    Returns:
        Summary with cancelled and failed counts
    """
    with _session_scope() as session:
        result = ExpirySweeper(session, batch_size=batch_size).sweep()
    if result.cancelled or result.failed:
        logger.info(
            "Expired %s pending bookings (%s failed)", result.cancelled, result.failed
        )
    return {
        "cancelled": result.cancelled,
        "failed": result.failed,
        "booking_ids": result.cancelled_ids,
    }


@celery_app.task(name=SEND_BOOKING_REMINDERS_TASK, max_retries=0, queue="maintenance")
def send_booking_reminders() -> Dict[str, Any]:
    """Queue day-ahead reminders for every tenant's PENDING and CONFIRMED bookings."""
    with _session_scope() as session:
        result = BookingReminderService(session).send_reminders()
    logger.info("Queued %s booking reminders (%s failed)", result.queued, result.failed)
    return {
        "queued": result.queued,
        "failed": result.failed,
        "booking_ids": result.booking_ids,
    }
