# backend/trim_booking/tasks/beat_schedule.py
"""
Celery Beat schedule configuration for the Trim booking engine.

Two periodic jobs: the expiry sweep, whose interval comes from settings
so staging can run it more often than production, and the daily reminder
run at 10:00 UTC.
"""

from datetime import timedelta
from typing import Any

from celery.schedules import crontab

from ..core.config import settings

EXPIRE_PENDING_BOOKINGS_TASK = "trim_booking.tasks.booking_tasks.expire_pending_bookings"
SEND_BOOKING_REMINDERS_TASK = "trim_booking.tasks.booking_tasks.send_booking_reminders"

# Main beat schedule configuration
CELERYBEAT_SCHEDULE: dict[str, dict[str, Any]] = {
    "expire-pending-bookings": {
        "task": EXPIRE_PENDING_BOOKINGS_TASK,
        "schedule": timedelta(seconds=settings.expiry_sweep_interval_seconds),
        "options": {
            "queue": "maintenance",
            "priority": 8,
            # A sweep that waited longer than one interval is superseded by the next
            "expires": settings.expiry_sweep_interval_seconds,
        },
    },
    "send-booking-reminders": {
        "task": SEND_BOOKING_REMINDERS_TASK,
        "schedule": crontab(hour=10, minute=0),
        "options": {
            "queue": "maintenance",
            "priority": 5,
            # A run still queued after an hour is dropped
            "expires": 60 * 60,
        },
    },
}

# Environment-specific overrides
SCHEDULE_CONFIG: dict[str, dict[str, dict[str, Any]]] = {
    "development": {
        "expire-pending-bookings": {
            "task": EXPIRE_PENDING_BOOKINGS_TASK,
            "schedule": timedelta(seconds=min(60, settings.expiry_sweep_interval_seconds)),
            "options": {"queue": "maintenance"},
        },
    },
}


def get_beat_schedule(environment: str = "production") -> dict[str, dict[str, Any]]:
    """
    Get the beat schedule for the specified environment.

    Args:
        environment: The environment name (production, development, testing)

    Returns:
        Mapping of task name to Celery beat configuration dict
    """
    base: dict[str, dict[str, Any]] = dict(CELERYBEAT_SCHEDULE)
    overrides = SCHEDULE_CONFIG.get(environment)
    if overrides:
        base.update(overrides)
    return base
