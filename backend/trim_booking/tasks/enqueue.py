"""
Centralized task enqueue helper.

Always use enqueue_task() instead of task.delay() so the request id of
the HTTP call that caused the work travels with the task.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from ..core.request_context import with_request_id_header

logger = logging.getLogger(__name__)


def enqueue_task(
    task_name: str,
    args: Optional[Tuple[Any, ...]] = None,
    kwargs: Optional[Dict[str, Any]] = None,
    **options: Any,
) -> Any:
    """
    Enqueue a Celery task by name.

    Args:
        task_name: Fully qualified task name
            (e.g., "trim_booking.tasks.notification_tasks.send_booking_notification")
        args: Positional arguments for the task
        kwargs: Keyword arguments for the task
        **options: Additional Celery apply_async options (countdown, eta, etc.)

    Returns:
        AsyncResult from Celery
    """
    from .celery_app import celery_app

    headers = with_request_id_header(options.pop("headers", None)) or {}

    # send_task routes by name, so the API process never has to import task modules
    return celery_app.send_task(
        task_name, args=args or (), kwargs=kwargs or {}, headers=headers, **options
    )
