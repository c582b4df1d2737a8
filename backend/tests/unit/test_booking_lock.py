# backend/tests/unit/test_booking_lock.py
from datetime import date
import threading

import pytest

from trim_booking.core import booking_lock
from trim_booking.core.booking_lock import advisory_lock_id, barber_day_key, barber_day_lock
from trim_booking.core.exceptions import BookingConflictException

DAY = date(2030, 5, 1)


def test_key_is_scoped_by_tenant_barber_and_date():
    key = barber_day_key("biz1", "barber1", DAY)

    assert key == "booking:biz1:barber1:2030-05-01"
    assert key != barber_day_key("biz2", "barber1", DAY)
    assert key != barber_day_key("biz1", "barber1", date(2030, 5, 2))


def test_advisory_lock_id_is_stable_signed_64_bit():
    key = barber_day_key("biz1", "barber1", DAY)

    assert advisory_lock_id(key) == advisory_lock_id(key)
    assert -(2**63) <= advisory_lock_id(key) < 2**63
    assert advisory_lock_id(key) != advisory_lock_id(barber_day_key("biz2", "barber1", DAY))


def test_sqlite_lock_times_out_with_conflict(db):
    holding = threading.Event()
    release = threading.Event()

    def holder():
        with barber_day_lock(db, "biz1", "barber1", DAY):
            holding.set()
            release.wait(5)

    thread = threading.Thread(target=holder)
    thread.start()
    try:
        assert holding.wait(5)
        with pytest.raises(BookingConflictException):
            with barber_day_lock(db, "biz1", "barber1", DAY, timeout_s=0.05):
                pass
        # Another barber on the same day is independent
        with barber_day_lock(db, "biz1", "barber2", DAY, timeout_s=0.05):
            pass
    finally:
        release.set()
        thread.join()

    with barber_day_lock(db, "biz1", "barber1", DAY, timeout_s=0.05):
        pass

    assert barber_day_key("biz1", "barber1", DAY) not in booking_lock._LOCAL_LOCKS


def test_sqlite_lock_registry_is_emptied_on_release(db):
    key = barber_day_key("biz1", "barber1", DAY)

    with barber_day_lock(db, "biz1", "barber1", DAY):
        assert booking_lock._LOCAL_LOCKS[key].users == 1

    assert key not in booking_lock._LOCAL_LOCKS
