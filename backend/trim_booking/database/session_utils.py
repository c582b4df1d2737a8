"""
Dialect lookup for sessions, used to pick the barber-day lock strategy.
"""

from __future__ import annotations

from sqlalchemy import inspect
from sqlalchemy.exc import NoInspectionAvailable, UnboundExecutionError
from sqlalchemy.orm import Session


def get_dialect_name(session: Session, default: str = "sqlite") -> str:
    """
    Name of the dialect the session talks to ("postgresql", "sqlite", ...).

    Falls back to ``default`` for sessions that are not bound yet.
    """
    try:
        bind = session.get_bind()
    except UnboundExecutionError:
        try:
            bind = getattr(inspect(session), "bind", None)
        except NoInspectionAvailable:
            bind = None

    dialect = getattr(bind, "dialect", None)
    return getattr(dialect, "name", None) or default
