# backend/tests/services/test_expiry_sweeper.py
from datetime import time, timedelta
from unittest.mock import patch

from tests.factories import book, make_customer
from trim_booking.core.timezone_utils import utc_now
from trim_booking.models.booking import BookingStatus, PaymentStatus
from trim_booking.services.availability_calculator import AvailabilityCalculator
from trim_booking.services.booking_lifecycle import BookingLifecycle
from trim_booking.services.expiry_sweeper import EXPIRY_REASON, ExpirySweeper
from trim_booking.services.notification_dispatcher import SEND_BOOKING_NOTIFICATION_TASK


def _lapsed(db, tenant, booking_day, start, **kwargs):
    return book(db, tenant, booking_day, start, now=utc_now() - timedelta(hours=1), **kwargs)


class TestSweep:
    def test_cancels_lapsed_holds_only(self, db, tenant_a, booking_day, mock_enqueue):
        fresh = book(db, tenant_a, booking_day, time(11, 0))
        in_shop = _lapsed(db, tenant_a, booking_day, time(14, 0), payment_method="pay_in_shop")
        # Admitted last: a later admission on this day would release it inline
        lapsed = _lapsed(db, tenant_a, booking_day, time(10, 0))

        result = ExpirySweeper(db).sweep()

        assert result.cancelled == 1
        assert result.failed == 0
        assert result.cancelled_ids == [lapsed.id]
        for booking in (lapsed, fresh, in_shop):
            db.refresh(booking)
        assert lapsed.status == BookingStatus.CANCELLED.value
        assert lapsed.payment_status == PaymentStatus.CANCELLED.value
        assert lapsed.cancellation_reason == EXPIRY_REASON
        assert fresh.status == BookingStatus.PENDING.value
        assert in_shop.status == BookingStatus.PENDING.value
        mock_enqueue.assert_called_once_with(
            SEND_BOOKING_NOTIFICATION_TASK, args=("booking.expired", lapsed.id)
        )

    def test_spans_tenants(self, db, tenant_a, tenant_b, booking_day):
        ours = _lapsed(db, tenant_a, booking_day, time(10, 0))
        theirs = _lapsed(db, tenant_b, booking_day, time(10, 0))

        result = ExpirySweeper(db).sweep()

        assert sorted(result.cancelled_ids) == sorted([ours.id, theirs.id])

    def test_deadline_is_inclusive(self, db, tenant_a, booking_day):
        booking = book(db, tenant_a, booking_day, time(10, 0))
        db.refresh(booking)

        result = ExpirySweeper(db).sweep(now=booking.expires_at)

        assert result.cancelled_ids == [booking.id]

    def test_slot_reappears_after_sweep(self, db, tenant_a, booking_day):
        _lapsed(db, tenant_a, booking_day, time(10, 0))
        ExpirySweeper(db).sweep()

        slots = AvailabilityCalculator(db).compute_slots(
            tenant_a.context, tenant_a.barber.id, booking_day, 30
        )

        assert time(10, 0) in slots

    def test_second_sweep_finds_nothing(self, db, tenant_a, booking_day):
        _lapsed(db, tenant_a, booking_day, time(10, 0))
        sweeper = ExpirySweeper(db)
        sweeper.sweep()

        result = sweeper.sweep()

        assert result.cancelled == 0

    def test_one_failure_does_not_stop_the_batch(self, db, tenant_a, booking_day):
        first = _lapsed(db, tenant_a, booking_day, time(10, 0))
        other = make_customer(db, tenant_a, "ben@example.com")
        second = _lapsed(db, tenant_a, booking_day, time(14, 0), customer=other)

        class FlakyLifecycle(BookingLifecycle):
            def cancel(self, booking, reason=None):
                if booking.id == first.id:
                    raise RuntimeError("row is poisoned")
                return super().cancel(booking, reason=reason)

        result = ExpirySweeper(db, lifecycle=FlakyLifecycle()).sweep()

        assert result.failed == 1
        assert result.cancelled_ids == [second.id]
        db.refresh(first)
        assert first.status == BookingStatus.PENDING.value

    def test_booking_paid_after_scan_is_skipped(self, db, tenant_a, booking_day, mock_enqueue):
        booking = _lapsed(db, tenant_a, booking_day, time(10, 0))
        booking.status = BookingStatus.CONFIRMED.value
        booking.payment_status = PaymentStatus.DEPOSIT_PAID.value
        db.commit()

        with patch(
            "trim_booking.repositories.booking_repository.BookingRepository.find_expired_pending",
            return_value=[(booking.id, tenant_a.business.id)],
        ):
            result = ExpirySweeper(db).sweep()

        assert result.cancelled == 0
        assert result.failed == 0
        db.refresh(booking)
        assert booking.status == BookingStatus.CONFIRMED.value
        mock_enqueue.assert_not_called()

    def test_batch_size_limits_work(self, db, tenant_a, booking_day):
        _lapsed(db, tenant_a, booking_day, time(10, 0))
        _lapsed(db, tenant_a, booking_day, time(14, 0))

        result = ExpirySweeper(db, batch_size=1).sweep()

        assert result.cancelled == 1
