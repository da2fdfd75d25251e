# backend/app/services/film_review_service.py
"""
Film Review Service for CoachLane

Film reviews are paid at checkout, so the coach works against money that has
already moved:

    pending_acceptance -> accepted -> completed
    pending_acceptance -> declined (full refund)

The film URL stays hidden until the coach accepts. Accepting starts the
turnaround clock; a review delivered after the deadline is accepted but
flagged with how late it was.
"""

from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import PAYOUT_EVENT_FILM_REVIEW_COMPLETED, PAYOUT_STATUS_PENDING
from ..core.exceptions import (
    AlreadyProcessedException,
    ForbiddenException,
    NotFoundException,
    ServiceException,
)
from ..core.timezone_utils import ensure_utc, hours_between, utc_now
from ..models.booking import Booking, BookingStatus, ReviewStatus
from ..models.payout_event import PayoutEvent
from ..repositories.factory import RepositoryFactory
from ..schemas.film_review import (
    FilmReviewAcceptResponse,
    FilmReviewCompleteResponse,
    FilmReviewDeclineResponse,
    FilmReviewDetail,
    StructuredReviewSubmission,
)
from .base import BaseService
from .best_effort import run_best_effort
from .notification_service import NotificationService
from .stripe_service import StripeService

logger = logging.getLogger(__name__)

REVEALED_STATUSES = {ReviewStatus.ACCEPTED.value, ReviewStatus.COMPLETED.value}


def round_hours(hours: float) -> int:
    """Whole hours, halves rounded up."""
    return int(Decimal(str(hours)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(value) if value is not None else None


class FilmReviewService(BaseService):
    """Coach-side film review transitions."""

    def __init__(
        self,
        db: Session,
        stripe_service: Optional[StripeService] = None,
        notification_service: Optional[NotificationService] = None,
    ):
        super().__init__(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.payout_event_repository = RepositoryFactory.create_payout_event_repository(db)
        self.stripe_service = stripe_service or StripeService(db)
        self.notification_service = notification_service or NotificationService(db)

    def _load_for_coach(self, booking_id: str, coach_id: str) -> Booking:
        booking = self.booking_repository.get_with_listing(booking_id)
        if booking is None or not booking.is_film_review:
            raise NotFoundException("Film review not found", code="FILM_REVIEW_NOT_FOUND")
        if booking.coach_id != coach_id:
            raise ForbiddenException("You can only manage your own film reviews")
        return booking

    def _require_status(self, booking: Booking, expected: ReviewStatus) -> None:
        if booking.review_status != expected.value:
            raise NotFoundException(
                f"Film review not found or not in {expected.value} status",
                code="FILM_REVIEW_WRONG_STATUS",
                details={"review_status": booking.review_status},
            )

    def _turnaround_hours(self, booking: Booking) -> int:
        if booking.turnaround_hours:
            return int(booking.turnaround_hours)
        if booking.listing is not None and booking.listing.turnaround_hours:
            return int(booking.listing.turnaround_hours)
        return settings.default_turnaround_hours

    def _deadline(self, booking: Booking) -> datetime:
        if booking.deadline_at is not None:
            return ensure_utc(booking.deadline_at)
        started = booking.coach_accepted_at or booking.created_at
        return ensure_utc(started) + timedelta(hours=self._turnaround_hours(booking))

    @BaseService.measure_operation("accept_film_review")
    def accept_review(self, booking_id: str, coach_id: str) -> FilmReviewAcceptResponse:
        """Commit to the review and reveal the film. Starts the turnaround clock."""
        booking = self._load_for_coach(booking_id, coach_id)
        self._require_status(booking, ReviewStatus.PENDING_ACCEPTANCE)

        now = utc_now()
        turnaround = self._turnaround_hours(booking)
        deadline = now + timedelta(hours=turnaround)
        with self.transaction():
            won = self.booking_repository.try_transition_review(
                booking_id,
                ReviewStatus.PENDING_ACCEPTANCE.value,
                ReviewStatus.ACCEPTED.value,
                coach_accepted_at=now,
                deadline_at=deadline,
                turnaround_hours=turnaround,
            )
            if not won:
                raise AlreadyProcessedException("film review", booking_id)

        coach_name = booking.coach.display_name if booking.coach else "Your coach"
        listing_title = booking.listing.title if booking.listing else "Film Review"
        athlete_email = booking.customer_email
        self.notification_service.send_email(
            "film_review_accepted",
            lambda email: email.send_film_review_accepted(
                to_email=athlete_email,
                coach_name=coach_name,
                listing_title=listing_title,
                deadline_at=deadline,
            ),
        )
        self.log_operation("film_review_accepted", booking_id=booking_id, deadline_at=deadline.isoformat())
        return FilmReviewAcceptResponse(
            booking_id=booking_id,
            film_url=booking.film_url,
            athlete_notes=booking.athlete_notes,
            deadline_at=deadline,
            turnaround_hours=turnaround,
        )

    @BaseService.measure_operation("decline_film_review")
    def decline_review(self, booking_id: str, coach_id: str) -> FilmReviewDeclineResponse:
        """
        Decline the review and refund the athlete in full.

        The decline stands even if the refund fails; the booking is then left
        with ``refund_issued = False`` for manual processing.
        """
        booking = self._load_for_coach(booking_id, coach_id)
        self._require_status(booking, ReviewStatus.PENDING_ACCEPTANCE)

        with self.transaction():
            won = self.booking_repository.try_transition_review(
                booking_id,
                ReviewStatus.PENDING_ACCEPTANCE.value,
                ReviewStatus.DECLINED.value,
                coach_declined_at=utc_now(),
            )
            if not won:
                raise AlreadyProcessedException("film review", booking_id)

        refund_issued = self._refund(booking)
        with self.transaction():
            booking.refund_issued = refund_issued
            if refund_issued:
                booking.status = BookingStatus.CANCELLED.value

        coach_name = booking.coach.display_name if booking.coach else "Your coach"
        listing_title = booking.listing.title if booking.listing else "Film Review"
        athlete_email = booking.customer_email
        amount = booking.amount_paid_cents
        self.notification_service.send_email(
            "film_review_declined",
            lambda email: email.send_film_review_declined(
                to_email=athlete_email,
                coach_name=coach_name,
                listing_title=listing_title,
                amount_paid_cents=amount,
                refund_issued=refund_issued,
            ),
        )
        message = (
            "Film review declined. A full refund has been issued."
            if refund_issued
            else "Film review declined. The refund will be processed manually."
        )
        return FilmReviewDeclineResponse(
            booking_id=booking_id, refund_issued=refund_issued, message=message
        )

    def _refund(self, booking: Booking) -> bool:
        if not booking.payment_intent_id:
            self.logger.error(f"Declined film review {booking.id} has no payment to refund")
            return False
        try:
            self.stripe_service.refund(
                booking.payment_intent_id,
                metadata={"booking_id": booking.id, "reason": "film_review_declined"},
            )
        except ServiceException as exc:
            self.logger.error(
                f"Refund failed for declined film review {booking.id}; needs manual processing: {exc.message}"
            )
            return False
        return True

    @BaseService.measure_operation("complete_film_review")
    def complete_review(
        self,
        booking_id: str,
        coach_id: str,
        submission: StructuredReviewSubmission,
        *,
        now: Optional[datetime] = None,
    ) -> FilmReviewCompleteResponse:
        """
        Deliver the review. Late delivery is recorded, never rejected.

        ``submission`` has already passed boundary validation.
        """
        booking = self._load_for_coach(booking_id, coach_id)
        self._require_status(booking, ReviewStatus.ACCEPTED)

        completed_at = ensure_utc(now) if now else utc_now()
        deadline = self._deadline(booking)
        is_late = completed_at > deadline
        hours_late = round_hours(hours_between(deadline, completed_at)) if is_late else None
        if is_late:
            self.logger.warning(
                f"Late film review submission for {booking_id}: {hours_late} hours past deadline"
            )

        with self.transaction():
            won = self.booking_repository.try_transition_review(
                booking_id,
                ReviewStatus.ACCEPTED.value,
                ReviewStatus.COMPLETED.value,
                status=BookingStatus.COMPLETED.value,
                review_content=submission.model_dump(),
                review_document_url=submission.supplemental_url,
                review_completed_at=completed_at,
                review_submitted_late=is_late,
                review_hours_late=hours_late,
            )
            if not won:
                raise AlreadyProcessedException("film review", booking_id)

        coach_share = booking.amount_paid_cents - (booking.platform_fee_cents or 0)
        run_best_effort(
            "payout_event.film_review_completed",
            lambda: self._record_payout(booking, coach_share, completed_at, is_late, hours_late),
        )

        coach_name = booking.coach.display_name if booking.coach else "Your coach"
        listing_title = booking.listing.title if booking.listing else "Film Review"
        athlete_email = booking.customer_email
        self.notification_service.send_email(
            "film_review_completed",
            lambda email: email.send_film_review_completed(
                to_email=athlete_email,
                coach_name=coach_name,
                listing_title=listing_title,
                overall_assessment=submission.overall_assessment,
                booking_id=booking_id,
            ),
        )
        self.log_operation("film_review_completed", booking_id=booking_id, late=is_late)
        return FilmReviewCompleteResponse(
            booking_id=booking_id,
            review_completed_at=completed_at,
            review_submitted_late=is_late,
            review_hours_late=hours_late,
        )

    def _record_payout(
        self,
        booking: Booking,
        amount_cents: int,
        completed_at: datetime,
        is_late: bool,
        hours_late: Optional[int],
    ) -> PayoutEvent:
        try:
            event = self.payout_event_repository.record(
                booking_id=booking.id,
                coach_id=booking.coach_id,
                event_type=PAYOUT_EVENT_FILM_REVIEW_COMPLETED,
                amount_cents=amount_cents,
                status=PAYOUT_STATUS_PENDING,
                metadata={
                    "review_completed_at": completed_at.isoformat(),
                    "was_late": is_late,
                    "hours_late": hours_late or 0,
                },
            )
            self.db.commit()
            return event
        except Exception:
            self.db.rollback()
            raise

    def get_review_for_coach(
        self, booking_id: str, coach_id: str, *, now: Optional[datetime] = None
    ) -> FilmReviewDetail:
        """Coach's view; deadline and overdue state are computed at read time."""
        booking = self._load_for_coach(booking_id, coach_id)
        current = ensure_utc(now) if now else utc_now()
        revealed = booking.review_status in REVEALED_STATUSES

        deadline: Optional[datetime] = None
        is_overdue = False
        hours_remaining: Optional[float] = None
        if booking.review_status == ReviewStatus.ACCEPTED.value:
            deadline = self._deadline(booking)
            is_overdue = current > deadline
            hours_remaining = round(hours_between(current, deadline), 1)
        elif booking.deadline_at is not None:
            deadline = ensure_utc(booking.deadline_at)

        return FilmReviewDetail(
            booking_id=booking.id,
            listing_title=booking.listing.title if booking.listing else None,
            review_status=booking.review_status or ReviewStatus.PENDING_ACCEPTANCE.value,
            amount_paid_cents=booking.amount_paid_cents,
            turnaround_hours=self._turnaround_hours(booking),
            film_url=booking.film_url if revealed else None,
            athlete_notes=booking.athlete_notes,
            coach_accepted_at=_as_utc(booking.coach_accepted_at),
            deadline_at=deadline,
            is_overdue=is_overdue,
            hours_remaining=hours_remaining,
            review_content=booking.review_content,
            review_completed_at=_as_utc(booking.review_completed_at),
            review_submitted_late=bool(booking.review_submitted_late),
            review_hours_late=booking.review_hours_late,
        )
