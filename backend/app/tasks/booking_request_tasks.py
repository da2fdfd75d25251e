"""Celery tasks for the booking request lifecycle."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, ParamSpec, Protocol, TypeVar, cast

from celery.result import AsyncResult

from app.database import get_db_session
from app.services.expiration_service import ExpirationService
from app.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R", covariant=True)


class TaskWrapper(Protocol[P, R]):
    def __call__(self, *args: P.args, **kwargs: P.kwargs) -> R:
        ...

    delay: "Callable[..., AsyncResult[Any]]"
    apply_async: "Callable[..., AsyncResult[Any]]"


def typed_task(
    *task_args: Any, **task_kwargs: Any
) -> Callable[[Callable[P, R]], TaskWrapper[P, R]]:
    """Return a typed Celery task decorator for mypy."""

    return cast(
        Callable[[Callable[P, R]], TaskWrapper[P, R]],
        celery_app.task(*task_args, **task_kwargs),
    )


@typed_task(name="app.tasks.booking_request_tasks.expire_stale_booking_requests")
def expire_stale_booking_requests() -> Dict[str, int]:
    """
    Expire booking requests pending past the expiry window.

    Not retried: the next scheduled run picks up anything this one missed.
    """
    with get_db_session() as db:
        result = ExpirationService(db).expire_stale_requests()
    logger.info(
        "Booking request sweep: expired=%s errors=%s processed=%s",
        result.expired_count,
        result.error_count,
        result.total_processed,
    )
    return result.to_dict()
