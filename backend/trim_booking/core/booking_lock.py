"""
Scoped lock serializing booking writes for one barber on one local date.

The lock is picked by SQLAlchemy dialect:

- postgresql: transaction-scoped advisory lock, released on commit/rollback
- other servers: SELECT ... FOR UPDATE on the barber row
- sqlite: process-local lock per key (development and tests), dropped from
  the registry once no thread holds or waits on it

Callers open the transaction inside the lock so that on every dialect
the lock outlives the commit:

    with barber_day_lock(db, business_id, barber_id, day):
        with self.transaction():
            ...
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
import hashlib
import logging
import threading
from typing import Dict, Iterator

from sqlalchemy import text
from sqlalchemy.orm import Session

from ..database.session_utils import get_dialect_name
from ..monitoring.prometheus_metrics import prometheus_metrics
from .exceptions import BookingConflictException

logger = logging.getLogger(__name__)

LOCAL_LOCK_TIMEOUT_SECONDS = 10.0


class _LocalLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


_LOCAL_LOCKS: Dict[str, _LocalLock] = {}
_LOCAL_LOCKS_GUARD = threading.Lock()


def barber_day_key(business_id: str, barber_id: str, booking_date: date) -> str:
    return f"booking:{business_id}:{barber_id}:{booking_date.isoformat()}"


def advisory_lock_id(key: str) -> int:
    """Signed 64-bit id for pg_advisory_xact_lock."""
    digest = hashlib.blake2b(key.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, byteorder="big", signed=True)


def _checkout_local_lock(key: str) -> _LocalLock:
    with _LOCAL_LOCKS_GUARD:
        entry = _LOCAL_LOCKS.get(key)
        if entry is None:
            entry = _LocalLock()
            _LOCAL_LOCKS[key] = entry
        entry.users += 1
        return entry


def _checkin_local_lock(key: str, entry: _LocalLock) -> None:
    with _LOCAL_LOCKS_GUARD:
        entry.users -= 1
        if entry.users == 0:
            _LOCAL_LOCKS.pop(key, None)


@contextmanager
def barber_day_lock(
    db: Session,
    business_id: str,
    barber_id: str,
    booking_date: date,
    timeout_s: float = LOCAL_LOCK_TIMEOUT_SECONDS,
) -> Iterator[str]:
    """Hold the (business, barber, date) lock for the duration of the block."""
    key = barber_day_key(business_id, barber_id, booking_date)
    dialect = get_dialect_name(db)

    if dialect == "sqlite":
        entry = _checkout_local_lock(key)
        try:
            if not entry.lock.acquire(timeout=timeout_s):
                prometheus_metrics.record_booking_lock(dialect, "timeout")
                logger.warning("booking_lock_timeout", extra={"lock_key": key})
                raise BookingConflictException(
                    "Another booking for this barber is being processed, please retry",
                    details={"barber_id": barber_id, "date": booking_date.isoformat()},
                )
            prometheus_metrics.record_booking_lock(dialect, "acquired")
            try:
                yield key
            finally:
                entry.lock.release()
        finally:
            _checkin_local_lock(key, entry)
        return

    if dialect == "postgresql":
        db.execute(text("SELECT pg_advisory_xact_lock(:lock_id)"), {"lock_id": advisory_lock_id(key)})
    else:
        from ..repositories.barber_repository import BarberRepository

        BarberRepository(db).lock_row(barber_id)

    prometheus_metrics.record_booking_lock(dialect, "acquired")
    logger.debug("booking_lock_acquired", extra={"lock_key": key, "dialect": dialect})
    yield key
