# backend/trim_booking/tasks/__init__.py
"""
Celery tasks for the Trim booking engine.

Import the worker app from trim_booking.tasks.celery_app; the API process
only needs trim_booking.tasks.enqueue.
"""
