# backend/app/services/expiration_service.py
"""
Expiration Service for CoachLane

Expires booking requests that have sat in ``pending`` longer than the expiry
window. Each request is handled on its own: one failure is counted and the
sweep moves on.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import MESSAGE_KIND_SYSTEM, SWEEP_BATCH_LIMIT
from ..core.timezone_utils import ensure_utc, utc_now
from ..models.booking_request import BookingRequest, BookingRequestStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepResult:
    expired_count: int
    error_count: int
    total_processed: int

    def to_dict(self) -> dict[str, int]:
        return {
            "expired_count": self.expired_count,
            "error_count": self.error_count,
            "total_processed": self.total_processed,
        }


class ExpirationService(BaseService):
    """Scheduled expiry of stale booking requests."""

    def __init__(
        self,
        db: Session,
        notification_service: Optional[NotificationService] = None,
        expiry_hours: Optional[int] = None,
    ):
        super().__init__(db)
        self.request_repository = RepositoryFactory.create_booking_request_repository(db)
        self.notification_service = notification_service or NotificationService(db)
        self.expiry_hours = expiry_hours or settings.booking_request_expiry_hours

    @BaseService.measure_operation("expire_stale_requests")
    def expire_stale_requests(self, now: Optional[datetime] = None) -> SweepResult:
        """
        Expire every pending request created before ``now - expiry_hours``.

        Requests are read in pages of ``SWEEP_BATCH_LIMIT`` until none are
        left. A request that changed state mid-sweep (lost compare-and-swap)
        is skipped: counted in ``total_processed`` but neither expired nor
        errored.
        """
        cutoff = (ensure_utc(now) if now else utc_now()) - timedelta(hours=self.expiry_hours)
        expired = errors = processed = 0
        after: Optional[Tuple[datetime, str]] = None
        while True:
            page = self.request_repository.find_stale_pending(
                cutoff, limit=SWEEP_BATCH_LIMIT, after=after
            )
            if not page:
                break
            after = (page[-1].created_at, page[-1].id)
            processed += len(page)
            page_expired, page_errors = self._expire_page(page)
            expired += page_expired
            errors += page_errors
            if len(page) < SWEEP_BATCH_LIMIT:
                break

        result = SweepResult(expired_count=expired, error_count=errors, total_processed=processed)
        self.log_operation("booking_requests_expired", cutoff=cutoff.isoformat(), **result.to_dict())
        return result

    def _expire_page(self, page: List[BookingRequest]) -> Tuple[int, int]:
        expired = errors = 0
        for request_id, request in [(r.id, r) for r in page]:
            try:
                if self._expire_one(request):
                    expired += 1
                    prometheus_metrics.inc_sweep_result("expired")
                else:
                    prometheus_metrics.inc_sweep_result("skipped")
            except Exception as exc:
                errors += 1
                prometheus_metrics.inc_sweep_result("error")
                self.logger.error(f"Failed to expire booking request {request_id}: {exc}", exc_info=True)

        return expired, errors

    def _expire_one(self, request: BookingRequest) -> bool:
        request_id = request.id
        conversation_id = request.conversation_id
        athlete_email = request.athlete.email
        athlete_name = request.athlete.display_name
        listing_title = request.listing.title
        starts_at = request.proposed_start
        timezone = request.timezone or "UTC"

        with self.transaction():
            won = self.request_repository.try_transition(
                request_id, BookingRequestStatus.PENDING.value, BookingRequestStatus.EXPIRED.value
            )
        if not won:
            self.logger.info(f"Booking request {request_id} changed state before expiry; skipping")
            return False

        self.notification_service.post_system_message(
            conversation_id,
            f"Request expired after {self.expiry_hours} hours.",
            kind=MESSAGE_KIND_SYSTEM,
            metadata={"request_id": request_id, "status": BookingRequestStatus.EXPIRED.value},
        )
        self.notification_service.send_email(
            "booking_expired",
            lambda email: email.send_booking_expired(
                to_email=athlete_email,
                athlete_name=athlete_name,
                listing_title=listing_title,
                starts_at=starts_at,
                timezone=timezone,
                conversation_id=conversation_id or "",
            ),
        )
        return True
