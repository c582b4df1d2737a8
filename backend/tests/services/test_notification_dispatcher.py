# backend/tests/services/test_notification_dispatcher.py
from unittest.mock import Mock

from trim_booking.services.notification_dispatcher import (
    SEND_BOOKING_NOTIFICATION_TASK,
    NotificationDispatcher,
)


def test_dispatch_queues_task_by_name():
    enqueue = Mock()

    assert NotificationDispatcher(enqueue=enqueue).booking_event("booking.confirmed", "b1", "biz1")

    enqueue.assert_called_once_with(SEND_BOOKING_NOTIFICATION_TASK, args=("booking.confirmed", "b1"))


def test_broker_outage_is_reported_not_raised():
    enqueue = Mock(side_effect=ConnectionError("broker down"))

    assert NotificationDispatcher(enqueue=enqueue).booking_event("booking.cancelled", "b1") is False
