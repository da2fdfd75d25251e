# backend/app/tasks/__init__.py
"""
Celery tasks package for CoachLane.

Contains the scheduled maintenance tasks:
- Expiry of stale booking requests
"""

from app.tasks.booking_request_tasks import expire_stale_booking_requests
from app.tasks.celery_app import BaseTask, celery_app

__all__ = [
    "BaseTask",
    "celery_app",
    "expire_stale_booking_requests",
]
