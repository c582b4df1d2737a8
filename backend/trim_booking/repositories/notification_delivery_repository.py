# backend/trim_booking/repositories/notification_delivery_repository.py
"""
Repository for downstream notification delivery tracking.

A delivery row is keyed by an idempotency key so that a retried task
bumps the attempt count instead of recording a second send.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional, cast

from sqlalchemy import Select, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session
import ulid

from ..database.session_utils import get_dialect_name
from ..models.notification_delivery import NotificationDelivery


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class NotificationDeliveryRepository:
    """Data access helper for notification_deliveries rows."""

    def __init__(self, db: Session):
        self.db = db
        self._dialect = get_dialect_name(db, default="postgresql").lower()

    def record_delivery(
        self,
        event_type: str,
        channel: str,
        recipient: str,
        idempotency_key: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> tuple[NotificationDelivery, bool]:
        """
        Persist the delivery attempt and enforce idempotency.

        Returns the row and whether it was newly created.
        """
        payload = payload or {}
        values = {
            "id": str(ulid.ULID()),
            "event_type": event_type,
            "channel": channel,
            "recipient": recipient,
            "idempotency_key": idempotency_key,
            "payload": payload,
            "attempt_count": 1,
            "delivered_at": _now_utc(),
        }

        if self._dialect in ("postgresql", "sqlite"):
            dialect_insert = pg_insert if self._dialect == "postgresql" else sqlite_insert
            stmt = (
                dialect_insert(NotificationDelivery)
                .values(**values)
                .on_conflict_do_nothing(index_elements=["idempotency_key"])
            )
            result = self.db.execute(stmt)
            created = bool(getattr(result, "rowcount", 0))
        else:
            created = self.get_by_idempotency_key(idempotency_key) is None
            if created:
                self.db.add(NotificationDelivery(**values))

        self.db.flush()
        row = self.get_by_idempotency_key(idempotency_key)
        if row is None:
            raise RuntimeError("Failed to load notification delivery after insert")
        if not created:
            row.touch(payload)
            self.db.flush()
        return row, created

    def get_by_idempotency_key(self, idempotency_key: str) -> Optional[NotificationDelivery]:
        """Fetch a delivery row by idempotency key."""
        stmt: Select[Any] = select(NotificationDelivery).where(
            NotificationDelivery.idempotency_key == idempotency_key
        )
        result = self.db.execute(stmt)
        return cast(Optional[NotificationDelivery], result.scalar_one_or_none())

