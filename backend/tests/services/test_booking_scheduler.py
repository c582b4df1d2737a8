# backend/tests/services/test_booking_scheduler.py
"""
Tests for BookingScheduler: admission rules, tenant scoping and the
one-winner guarantee for concurrent requests on the same slot.
"""

from datetime import time, timedelta
from decimal import Decimal
import threading
from unittest.mock import patch

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tests.factories import book, make_customer, make_service, seed_tenant
from trim_booking.core.exceptions import (
    AmountTooSmallException,
    BookingConflictException,
    CustomerBlockedException,
    InvalidTransitionException,
    NotFoundException,
    OutsideWorkingHoursException,
    ValidationException,
)
from trim_booking.core.timezone_utils import ensure_utc, utc_now
from trim_booking.database import Base
from trim_booking.models import Booking
from trim_booking.models.booking import BookingStatus, PaymentStatus
from trim_booking.services.booking_scheduler import STALE_HOLD_REASON, BookingScheduler
from trim_booking.services.notification_dispatcher import SEND_BOOKING_NOTIFICATION_TASK


class TestCreateBooking:
    def test_online_booking_holds_slot_for_deposit(self, db, tenant_a, booking_day):
        before = utc_now()

        booking = book(db, tenant_a, booking_day, time(10, 0))

        assert booking.status == BookingStatus.PENDING.value
        assert booking.payment_status == PaymentStatus.DEPOSIT_PENDING.value
        assert booking.business_id == tenant_a.business.id
        assert booking.end_time == time(10, 30)
        assert booking.deposit_amount == Decimal("25.00")
        assert booking.outstanding_balance == Decimal("25.00")
        expires_at = ensure_utc(booking.expires_at)
        assert before + timedelta(minutes=10) <= expires_at <= utc_now() + timedelta(minutes=10)

    def test_pay_in_shop_booking_has_no_hold(self, db, tenant_a, booking_day):
        booking = book(db, tenant_a, booking_day, time(10, 0), payment_method="pay_in_shop")

        assert booking.status == BookingStatus.PENDING.value
        assert booking.payment_status == PaymentStatus.PENDING.value
        assert booking.expires_at is None
        assert booking.deposit_amount == Decimal("0.00")
        assert booking.outstanding_balance == Decimal("50.00")

    def test_zero_deposit_service_behaves_like_pay_in_shop(self, db, tenant_a, booking_day):
        beard_trim = make_service(db, tenant_a, deposit_percentage=0)

        booking = book(db, tenant_a, booking_day, time(10, 0), service=beard_trim)

        assert booking.payment_status == PaymentStatus.PENDING.value
        assert booking.expires_at is None
        assert booking.end_time == time(10, 15)

    def test_creation_does_not_notify(self, db, tenant_a, booking_day, mock_enqueue):
        book(db, tenant_a, booking_day, time(10, 0))

        mock_enqueue.assert_not_called()

    def test_unknown_payment_method_rejected(self, db, tenant_a, booking_day):
        with pytest.raises(ValidationException) as exc_info:
            book(db, tenant_a, booking_day, time(10, 0), payment_method="crypto")

        assert exc_info.value.code == "INVALID_PAYMENT_METHOD"

    def test_blacklisted_customer_rejected(self, db, tenant_a, booking_day):
        blocked = make_customer(
            db, tenant_a, "blocked@example.com", blacklisted=True, blacklist_reason="Abuse"
        )

        with pytest.raises(CustomerBlockedException):
            book(db, tenant_a, booking_day, time(10, 0), customer=blocked)

        assert db.query(Booking).count() == 0

    def test_start_in_the_past_rejected(self, db, tenant_a, booking_day):
        with pytest.raises(ValidationException) as exc_info:
            book(db, tenant_a, booking_day - timedelta(days=8), time(10, 0))

        assert exc_info.value.code == "BOOKING_IN_PAST"

    @pytest.mark.parametrize(
        "start",
        [time(8, 30), time(11, 45), time(12, 30), time(16, 45)],
        ids=["before-opening", "into-break", "inside-break", "past-closing"],
    )
    def test_outside_working_hours_rejected(self, db, tenant_a, booking_day, start):
        with pytest.raises(OutsideWorkingHoursException) as exc_info:
            book(db, tenant_a, booking_day, start)

        assert exc_info.value.code == "OUTSIDE_WORKING_HOURS"
        assert exc_info.value.to_http_exception().status_code == 422

    def test_slot_touching_break_and_closing_allowed(self, db, tenant_a, booking_day):
        book(db, tenant_a, booking_day, time(11, 30))
        book(db, tenant_a, booking_day, time(13, 0))
        book(db, tenant_a, booking_day, time(16, 30))

        assert db.query(Booking).count() == 3

    def test_deposit_below_processor_minimum_rejected(self, db, tenant_a, booking_day):
        cheap = make_service(db, tenant_a, name="Line Up", price="0.30", deposit_percentage=50)

        with pytest.raises(AmountTooSmallException):
            book(db, tenant_a, booking_day, time(10, 0), service=cheap)

        assert db.query(Booking).count() == 0


class TestConflicts:
    def test_overlap_rejected_with_conflicting_booking(self, db, tenant_a, booking_day):
        first = book(db, tenant_a, booking_day, time(10, 0))
        other = make_customer(db, tenant_a, "ben@example.com")

        with pytest.raises(BookingConflictException) as exc_info:
            book(db, tenant_a, booking_day, time(10, 15), customer=other)

        assert exc_info.value.details["conflicting_booking_id"] == first.id
        assert exc_info.value.to_http_exception().status_code == 409
        assert db.query(Booking).count() == 1

    def test_back_to_back_bookings_allowed(self, db, tenant_a, booking_day):
        book(db, tenant_a, booking_day, time(10, 0))
        book(db, tenant_a, booking_day, time(10, 30))
        book(db, tenant_a, booking_day, time(9, 30))

        assert db.query(Booking).count() == 3

    def test_cancelled_booking_frees_the_slot(self, db, tenant_a, booking_day):
        first = book(db, tenant_a, booking_day, time(10, 0))
        first.status = BookingStatus.CANCELLED.value
        db.commit()

        second = book(db, tenant_a, booking_day, time(10, 0))

        assert second.id != first.id

    def test_lapsed_hold_released_on_new_booking(self, db, tenant_a, booking_day):
        stale = book(db, tenant_a, booking_day, time(10, 0), now=utc_now() - timedelta(hours=1))

        fresh = book(db, tenant_a, booking_day, time(10, 0))

        db.refresh(stale)
        assert stale.status == BookingStatus.CANCELLED.value
        assert stale.cancellation_reason == STALE_HOLD_REASON
        assert fresh.status == BookingStatus.PENDING.value

    def test_released_hold_is_announced_as_expired(
        self, db, tenant_a, booking_day, mock_enqueue
    ):
        stale = book(db, tenant_a, booking_day, time(10, 0), now=utc_now() - timedelta(hours=1))

        with patch(
            "trim_booking.services.booking_scheduler.prometheus_metrics.inc_booking_expired"
        ) as inc_expired:
            book(db, tenant_a, booking_day, time(10, 0))

        inc_expired.assert_called_once_with("cancelled")
        mock_enqueue.assert_called_once_with(
            SEND_BOOKING_NOTIFICATION_TASK, args=("booking.expired", stale.id)
        )

    def test_pay_in_shop_hold_never_lapses(self, db, tenant_a, booking_day):
        book(
            db,
            tenant_a,
            booking_day,
            time(10, 0),
            payment_method="pay_in_shop",
            now=utc_now() - timedelta(hours=1),
        )

        with pytest.raises(BookingConflictException):
            book(db, tenant_a, booking_day, time(10, 0))


class TestTenantIsolation:
    def test_same_slot_in_another_tenant_is_independent(self, db, tenant_a, tenant_b, booking_day):
        ours = book(db, tenant_a, booking_day, time(10, 0))
        theirs = book(db, tenant_b, booking_day, time(10, 0))

        assert ours.business_id == tenant_a.business.id
        assert theirs.business_id == tenant_b.business.id

    def test_foreign_barber_is_not_found(self, db, tenant_a, tenant_b, booking_day):
        scheduler = BookingScheduler(db)

        with pytest.raises(NotFoundException) as exc_info:
            scheduler.create_booking(
                tenant_a.context,
                tenant_a.customer.id,
                tenant_b.barber.id,
                tenant_a.service.id,
                booking_day,
                time(10, 0),
            )
        assert exc_info.value.code == "BARBER_NOT_FOUND"

    def test_foreign_customer_is_not_found(self, db, tenant_a, tenant_b, booking_day):
        with pytest.raises(NotFoundException) as exc_info:
            book(db, tenant_a, booking_day, time(10, 0), customer=tenant_b.customer)

        assert exc_info.value.code == "CUSTOMER_NOT_FOUND"

    def test_inactive_barber_is_not_found(self, db, tenant_a, booking_day):
        tenant_a.barber.active = False
        db.commit()

        with pytest.raises(NotFoundException):
            book(db, tenant_a, booking_day, time(10, 0))


class TestReschedule:
    def test_moves_booking_and_notifies(self, db, tenant_a, booking_day, mock_enqueue):
        booking = book(db, tenant_a, booking_day, time(10, 0), payment_method="pay_in_shop")
        next_day = booking_day + timedelta(days=1)

        moved = BookingScheduler(db).reschedule_booking(
            tenant_a.context, booking.id, next_day, time(14, 0)
        )

        assert moved.booking_date == next_day
        assert moved.start_time == time(14, 0)
        assert moved.end_time == time(14, 30)
        mock_enqueue.assert_called_once_with(
            SEND_BOOKING_NOTIFICATION_TASK, args=("booking.rescheduled", booking.id)
        )

    def test_overlapping_itself_is_allowed(self, db, tenant_a, booking_day):
        booking = book(db, tenant_a, booking_day, time(10, 0))

        moved = BookingScheduler(db).reschedule_booking(
            tenant_a.context, booking.id, booking_day, time(10, 15)
        )

        assert moved.start_time == time(10, 15)

    def test_conflict_leaves_booking_in_place(self, db, tenant_a, booking_day):
        book(db, tenant_a, booking_day, time(11, 0))
        other = make_customer(db, tenant_a, "ben@example.com")
        booking = book(db, tenant_a, booking_day, time(10, 0), customer=other)

        with pytest.raises(BookingConflictException):
            BookingScheduler(db).reschedule_booking(
                tenant_a.context, booking.id, booking_day, time(11, 15)
            )

        db.refresh(booking)
        assert booking.start_time == time(10, 0)

    def test_terminal_booking_cannot_move(self, db, tenant_a, booking_day):
        booking = book(db, tenant_a, booking_day, time(10, 0))
        booking.status = BookingStatus.CANCELLED.value
        db.commit()

        with pytest.raises(InvalidTransitionException):
            BookingScheduler(db).reschedule_booking(
                tenant_a.context, booking.id, booking_day, time(14, 0)
            )

    def test_other_tenant_booking_is_not_found(self, db, tenant_a, tenant_b, booking_day):
        theirs = book(db, tenant_b, booking_day, time(10, 0))

        with pytest.raises(NotFoundException):
            BookingScheduler(db).reschedule_booking(
                tenant_a.context, theirs.id, booking_day, time(14, 0)
            )


def test_concurrent_requests_for_one_slot_admit_exactly_one(tmp_path):
    """Each thread has its own session on a shared file database."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'concurrency.db'}",
        connect_args={"check_same_thread": False, "timeout": 15},
    )
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)

    seed_session = SessionLocal()
    tenant = seed_tenant(seed_session, "downtown")
    customers = [
        make_customer(seed_session, tenant, f"walk-in-{i}@example.com") for i in range(6)
    ]
    ids = (tenant.barber.id, tenant.service.id, [c.id for c in customers])
    seed_session.close()

    booking_day = (utc_now() + timedelta(days=7)).date()
    barrier = threading.Barrier(len(customers))
    outcomes = []
    outcomes_lock = threading.Lock()

    def attempt(customer_id):
        session = SessionLocal()
        try:
            barrier.wait(5)
            BookingScheduler(session).create_booking(
                tenant.context, customer_id, ids[0], ids[1], booking_day, time(10, 0)
            )
            result = "admitted"
        except BookingConflictException:
            result = "conflict"
        finally:
            session.close()
        with outcomes_lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt, args=(cid,)) for cid in ids[2]]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(30)

    assert sorted(outcomes) == ["admitted"] + ["conflict"] * (len(customers) - 1)

    check = SessionLocal()
    try:
        assert check.query(Booking).filter(Booking.booking_date == booking_day).count() == 1
    finally:
        check.close()
        engine.dispose()
