# backend/app/tasks/beat_schedule.py
"""
Celery Beat schedule configuration for CoachLane.

Periodic tasks are scheduled with crontab expressions.
"""

from typing import Any

from celery.schedules import crontab

CELERYBEAT_SCHEDULE: dict[str, dict[str, Any]] = {
    # Expire booking requests left pending past the expiry window
    "expire-stale-booking-requests": {
        "task": "app.tasks.booking_request_tasks.expire_stale_booking_requests",
        "schedule": crontab(minute=5),  # Hourly at :05
        "options": {"queue": "bookings", "expires": 3000},
    },
}

SCHEDULE_CONFIG: dict[str, dict[str, dict[str, Any]]] = {
    "development": {
        "expire-stale-booking-requests": {
            "task": "app.tasks.booking_request_tasks.expire_stale_booking_requests",
            "schedule": crontab(minute="*/15"),
            "options": {"queue": "bookings"},
        },
    },
}


def get_beat_schedule(environment: str = "production") -> dict[str, dict[str, Any]]:
    """
    Get the beat schedule for the specified environment.

    Args:
        environment: The environment name (production, development)

    Returns:
        Mapping of task name to Celery beat configuration dict
    """
    base: dict[str, dict[str, Any]] = dict(CELERYBEAT_SCHEDULE)
    overrides = SCHEDULE_CONFIG.get(environment)
    if overrides:
        base.update(overrides)
    return base
