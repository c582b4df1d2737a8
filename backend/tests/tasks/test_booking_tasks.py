# backend/tests/tasks/test_booking_tasks.py
from contextlib import contextmanager
from datetime import time, timedelta
from unittest.mock import patch

from celery.schedules import crontab

from tests.factories import DUBLIN, book
from trim_booking.core.config import settings
from trim_booking.core.timezone_utils import business_today, utc_now
from trim_booking.models.booking import BookingStatus
from trim_booking.tasks import booking_tasks
from trim_booking.tasks.beat_schedule import (
    EXPIRE_PENDING_BOOKINGS_TASK,
    SEND_BOOKING_REMINDERS_TASK,
    get_beat_schedule,
)
from trim_booking.tasks.celery_app import celery_app


def test_expire_pending_bookings_task(db, tenant_a, booking_day):
    fresh = book(db, tenant_a, booking_day, time(11, 0))
    lapsed = book(db, tenant_a, booking_day, time(10, 0), now=utc_now() - timedelta(hours=1))

    @contextmanager
    def scope():
        yield db
        db.commit()

    with patch.object(booking_tasks, "_session_scope", scope):
        summary = booking_tasks.expire_pending_bookings()

    assert summary == {"cancelled": 1, "failed": 0, "booking_ids": [lapsed.id]}
    db.refresh(fresh)
    assert fresh.status == BookingStatus.PENDING.value


def test_send_booking_reminders_task(db, tenant_a, mock_enqueue):
    tomorrow = business_today(DUBLIN) + timedelta(days=1)
    booking = book(db, tenant_a, tomorrow, time(10, 0), payment_method="pay_in_shop")

    @contextmanager
    def scope():
        yield db
        db.commit()

    with patch.object(booking_tasks, "_session_scope", scope):
        summary = booking_tasks.send_booking_reminders()

    assert summary == {"queued": 1, "failed": 0, "booking_ids": [booking.id]}
    assert mock_enqueue.call_args.kwargs["args"] == ("booking.reminder", booking.id)


def test_beat_sends_reminders_daily_at_ten():
    entry = get_beat_schedule("production")["send-booking-reminders"]

    assert entry["task"] == SEND_BOOKING_REMINDERS_TASK
    assert entry["schedule"] == crontab(hour=10, minute=0)
    assert entry["options"]["queue"] == "maintenance"


def test_beat_runs_the_sweep_on_the_configured_interval():
    entry = get_beat_schedule("production")["expire-pending-bookings"]

    assert entry["task"] == EXPIRE_PENDING_BOOKINGS_TASK
    assert entry["schedule"] == timedelta(seconds=settings.expiry_sweep_interval_seconds)
    assert entry["options"]["queue"] == "maintenance"


def test_development_sweeps_at_least_every_minute():
    entry = get_beat_schedule("development")["expire-pending-bookings"]

    assert entry["schedule"] <= timedelta(seconds=60)


def test_tasks_are_registered_and_routed():
    celery_app.loader.import_default_modules()

    assert EXPIRE_PENDING_BOOKINGS_TASK in celery_app.tasks
    assert SEND_BOOKING_REMINDERS_TASK in celery_app.tasks
    assert "trim_booking.tasks.notification_tasks.send_booking_notification" in celery_app.tasks
    assert celery_app.conf.task_routes["trim_booking.tasks.notification_tasks.*"] == {
        "queue": "notifications"
    }
