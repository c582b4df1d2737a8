from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import JSON, Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
import ulid

from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class NotificationDelivery(Base):
    """Record of dispatched notifications to enforce idempotency downstream."""

    __tablename__ = "notification_deliveries"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    event_type = Column(String(100), nullable=False, index=True)
    channel = Column(String(20), nullable=False)
    recipient = Column(String(255), nullable=False)
    idempotency_key = Column(String(255), nullable=False, unique=True)
    payload = Column(JSONB().with_variant(JSON(), "sqlite"), nullable=False, default=dict)
    attempt_count = Column(Integer, nullable=False, default=1)
    delivered_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("idempotency_key", name="uq_notification_deliveries_idempotency"),
    )

    def touch(self, payload: Dict[str, Any] | None = None) -> None:
        """Update delivery metadata if a duplicate send is attempted."""
        self.attempt_count += 1
        self.delivered_at = _now_utc()
        if payload is not None:
            self.payload = payload

    def __repr__(self) -> str:
        return f"<NotificationDelivery({self.event_type} via {self.channel} to {self.recipient})>"
