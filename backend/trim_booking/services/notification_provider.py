# backend/trim_booking/services/notification_provider.py
"""
Notification provider boundary.

Stands in for the email/SMS vendors: it logs the message with the recipient
masked and records a notification_deliveries row keyed by an idempotency
key, so a retried task never counts as a second send. Template rendering and real delivery live
outside this service. The NOTIFICATION_PROVIDER_RAISE_ON environment flag
simulates transient vendor failures for tests and staging.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
import logging
import os
from typing import Any, Callable, Dict, Generator, Optional

from sqlalchemy.orm import Session

from ..database import SessionLocal
from ..repositories.factory import RepositoryFactory

logger = logging.getLogger(__name__)

CHANNEL_EMAIL = "email"
CHANNEL_SMS = "sms"


class NotificationProviderTemporaryError(RuntimeError):
    """Transient vendor failure; the caller should retry."""


def _should_raise(event_type: str, idempotency_key: str) -> bool:
    raw = os.getenv("NOTIFICATION_PROVIDER_RAISE_ON")
    if not raw:
        return False
    tokens = {token.strip() for token in raw.split(",") if token.strip()}
    return "*" in tokens or event_type in tokens or idempotency_key in tokens


def mask_recipient(recipient: str) -> str:
    """Hide all but a hint of an email address or phone number for logs."""
    if "@" in recipient:
        local, _, domain = recipient.partition("@")
        return f"{local[:1]}***@{domain}"
    return f"***{recipient[-4:]}" if len(recipient) > 4 else "***"


@contextmanager
def _managed_session(session_factory: Callable[[], Session]) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@dataclass(slots=True)
class NotificationDispatchResult:
    idempotency_key: str
    event_type: str
    channel: str
    attempt_count: int
    created: bool


class NotificationProvider:
    """
    Usage:
        provider = NotificationProvider()
        provider.send("booking.confirmed", "email", "ana@example.com", {...}, "booking.confirmed:01H...:email")
    """

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        self._session_factory = session_factory or SessionLocal

    def send(
        self,
        event_type: str,
        channel: str,
        recipient: str,
        payload: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
        session: Optional[Session] = None,
    ) -> NotificationDispatchResult:
        """
        Deliver one message on one channel.

        When a session is given the delivery row joins the caller's
        transaction; otherwise the provider commits its own.
        """
        if not idempotency_key:
            raise ValueError("idempotency_key is required for notification dispatch")

        if _should_raise(event_type, idempotency_key):
            logger.warning("Simulating provider failure for %s (%s)", event_type, idempotency_key)
            raise NotificationProviderTemporaryError(
                f"Simulated transient failure for {event_type}"
            )

        payload = payload or {}
        logger.info(
            "Dispatching %s notification %s to %s key=%s",
            channel,
            event_type,
            mask_recipient(recipient),
            idempotency_key,
        )

        if session is not None:
            return self._record(session, event_type, channel, recipient, payload, idempotency_key)
        with _managed_session(self._session_factory) as managed:
            return self._record(managed, event_type, channel, recipient, payload, idempotency_key)

    @staticmethod
    def _record(
        session: Session,
        event_type: str,
        channel: str,
        recipient: str,
        payload: Dict[str, Any],
        idempotency_key: str,
    ) -> NotificationDispatchResult:
        repository = RepositoryFactory.create_notification_delivery_repository(session)
        record, created = repository.record_delivery(
            event_type, channel, recipient, idempotency_key, payload
        )
        return NotificationDispatchResult(
            idempotency_key=idempotency_key,
            event_type=event_type,
            channel=channel,
            attempt_count=record.attempt_count,
            created=created,
        )
