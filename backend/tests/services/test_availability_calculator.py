# backend/tests/services/test_availability_calculator.py
from datetime import date, datetime, time, timedelta, timezone

import pytest

from tests.factories import book
from trim_booking.core.exceptions import NotFoundException, ValidationException
from trim_booking.core.timezone_utils import utc_now
from trim_booking.models.barber import AvailabilityWindow
from trim_booking.services.availability_calculator import AvailabilityCalculator


def _morning(start_hour=9, start_minute=0):
    """Expected 30-minute starts from the given time up to 11:30."""
    slots = []
    cursor = datetime(2000, 1, 1, start_hour, start_minute)
    while cursor.time() <= time(11, 30):
        slots.append(cursor.time())
        cursor += timedelta(minutes=15)
    return slots


AFTERNOON = [
    (datetime(2000, 1, 1, 13, 0) + timedelta(minutes=15 * i)).time() for i in range(15)
]


class TestComputeSlots:
    def test_full_day_excludes_break(self, db, tenant_a, booking_day):
        slots = AvailabilityCalculator(db).compute_slots(
            tenant_a.context, tenant_a.barber.id, booking_day, 30
        )

        assert slots == _morning() + AFTERNOON
        assert time(11, 45) not in slots
        assert AFTERNOON[-1] == time(16, 30)

    def test_booked_interval_removes_overlapping_starts(self, db, tenant_a, booking_day):
        book(db, tenant_a, booking_day, time(10, 0))

        slots = AvailabilityCalculator(db).compute_slots(
            tenant_a.context, tenant_a.barber.id, booking_day, 30
        )

        for taken in (time(9, 45), time(10, 0), time(10, 15)):
            assert taken not in slots
        assert time(9, 30) in slots
        assert time(10, 30) in slots
        assert len(slots) == 26 - 3

    def test_lapsed_hold_does_not_block(self, db, tenant_a, booking_day):
        book(db, tenant_a, booking_day, time(10, 0), now=utc_now() - timedelta(hours=1))

        slots = AvailabilityCalculator(db).compute_slots(
            tenant_a.context, tenant_a.barber.id, booking_day, 30
        )

        assert time(10, 0) in slots

    def test_other_tenant_bookings_do_not_block(self, db, tenant_a, tenant_b, booking_day):
        book(db, tenant_b, booking_day, time(10, 0))

        slots = AvailabilityCalculator(db).compute_slots(
            tenant_a.context, tenant_a.barber.id, booking_day, 30
        )

        assert time(10, 0) in slots

    def test_today_only_offers_future_starts(self, db, tenant_a):
        # 10:05 UTC is 11:05 in Dublin during summer time
        now = datetime(2030, 5, 1, 10, 5, tzinfo=timezone.utc)

        slots = AvailabilityCalculator(db).compute_slots(
            tenant_a.context, tenant_a.barber.id, date(2030, 5, 1), 30, now=now
        )

        assert slots[0] == time(11, 15)
        assert slots == _morning(11, 15) + AFTERNOON

    def test_past_date_has_no_slots(self, db, tenant_a):
        now = datetime(2030, 5, 1, 10, 5, tzinfo=timezone.utc)

        assert (
            AvailabilityCalculator(db).compute_slots(
                tenant_a.context, tenant_a.barber.id, date(2030, 4, 30), 30, now=now
            )
            == []
        )

    def test_day_off_has_no_slots(self, db, tenant_a, booking_day):
        window = (
            db.query(AvailabilityWindow)
            .filter_by(barber_id=tenant_a.barber.id, day_of_week=booking_day.weekday())
            .one()
        )
        window.is_available = False
        db.commit()

        assert (
            AvailabilityCalculator(db).compute_slots(
                tenant_a.context, tenant_a.barber.id, booking_day, 30
            )
            == []
        )

    def test_service_longer_than_any_gap(self, db, tenant_a, booking_day):
        assert (
            AvailabilityCalculator(db).compute_slots(
                tenant_a.context, tenant_a.barber.id, booking_day, 240
            )
            == [time(13, 0)]
        )

    def test_non_positive_duration_rejected(self, db, tenant_a, booking_day):
        with pytest.raises(ValidationException):
            AvailabilityCalculator(db).compute_slots(
                tenant_a.context, tenant_a.barber.id, booking_day, 0
            )

    def test_unknown_or_foreign_barber_not_found(self, db, tenant_a, tenant_b, booking_day):
        calculator = AvailabilityCalculator(db)

        with pytest.raises(NotFoundException):
            calculator.compute_slots(tenant_a.context, "01HF0000000000000000000000", booking_day, 30)
        with pytest.raises(NotFoundException):
            calculator.compute_slots(tenant_a.context, tenant_b.barber.id, booking_day, 30)

    def test_inactive_barber_not_found(self, db, tenant_a, booking_day):
        tenant_a.barber.active = False
        db.commit()

        with pytest.raises(NotFoundException):
            AvailabilityCalculator(db).compute_slots(
                tenant_a.context, tenant_a.barber.id, booking_day, 30
            )


class TestComputeSlotsForService:
    def test_uses_service_duration(self, db, tenant_a, booking_day):
        slots = AvailabilityCalculator(db).compute_slots_for_service(
            tenant_a.context, tenant_a.barber.id, booking_day, tenant_a.service.id
        )

        assert slots[-1] == time(16, 30)

    def test_foreign_service_not_found(self, db, tenant_a, tenant_b, booking_day):
        with pytest.raises(NotFoundException) as exc_info:
            AvailabilityCalculator(db).compute_slots_for_service(
                tenant_a.context, tenant_a.barber.id, booking_day, tenant_b.service.id
            )

        assert exc_info.value.code == "SERVICE_NOT_FOUND"


class TestSchedule:
    def test_lists_occupied_intervals_in_order(self, db, tenant_a, booking_day):
        later = book(db, tenant_a, booking_day, time(14, 0), payment_method="pay_in_shop")
        earlier = book(db, tenant_a, booking_day, time(9, 0))

        entries = AvailabilityCalculator(db).get_schedule(
            tenant_a.context, tenant_a.barber.id, booking_day
        )

        assert [e.booking_id for e in entries] == [earlier.id, later.id]
        assert entries[0].customer_name == "Ana Murphy"
        assert entries[0].service_name == "Skin Fade"
        assert entries[1].end_time == time(14, 30)

    def test_inactive_barber_schedule_still_visible(self, db, tenant_a, booking_day):
        book(db, tenant_a, booking_day, time(9, 0))
        tenant_a.barber.active = False
        db.commit()

        entries = AvailabilityCalculator(db).get_schedule(
            tenant_a.context, tenant_a.barber.id, booking_day
        )

        assert len(entries) == 1

    def test_lapsed_hold_left_out(self, db, tenant_a, booking_day):
        kept = book(db, tenant_a, booking_day, time(11, 0))
        # Admitted last so no later booking releases it
        book(db, tenant_a, booking_day, time(10, 0), now=utc_now() - timedelta(hours=1))

        entries = AvailabilityCalculator(db).get_schedule(
            tenant_a.context, tenant_a.barber.id, booking_day
        )

        assert [e.booking_id for e in entries] == [kept.id]
