# backend/app/services/booking_request_service.py
"""
Booking Request Service for CoachLane

Drives a live lesson request from ``pending`` to ``accepted`` or ``declined``.

Accepting charges the athlete's saved card off-session, provisions the video
meeting, records the booking and tells both sides in the conversation. Money
moves before the booking row exists, so the ordering is strict:

1. preconditions (no external calls)
2. commission, customer, payment method, capture
3. booking insert + ``pending -> accepted`` compare-and-swap, one transaction
4. meeting, saved onto the booking (failure tolerated)
5. system message and email (best-effort)

The meeting is only created once this accept owns the request, so an accept
that loses a race never leaves a second meeting behind. A database failure
in step 3 after a successful capture is escalated as
``CaptureWithoutBookingException`` with a critical log marker.
"""

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any, Dict, Optional, Union
from urllib.parse import urlencode

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import (
    MESSAGE_KIND_BOOKING_ACCEPTED,
    MESSAGE_KIND_PAYMENT_ACTION_REQUIRED,
    MESSAGE_KIND_PAYMENT_FAILED,
    MESSAGE_KIND_SYSTEM,
)
from ..core.exceptions import (
    AlreadyProcessedException,
    CaptureWithoutBookingException,
    CoachPayoutNotConfiguredException,
    ForbiddenException,
    MissingPaymentMethodException,
    NotFoundException,
    RepositoryException,
    ServiceException,
    ValidationException,
)
from ..core.timezone_utils import format_for_timezone
from ..integrations.zoom_client import MeetingDetails
from ..models.booking import Booking, BookingStatus, BookingType
from ..models.booking_request import BookingRequest, BookingRequestStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..schemas.booking_request import (
    AcceptFailed,
    AcceptRequiresAction,
    AcceptSucceeded,
    DeclineResponse,
)
from ..schemas.commission import FeeBreakdown
from .base import BaseService
from .best_effort import run_best_effort
from .commission_service import CommissionService, compute_fees
from .meeting_service import MeetingService, build_zoom_client
from .notification_service import NotificationService
from .stripe_service import (
    CaptureDeclined,
    CaptureInProgress,
    CaptureRequiresAction,
    StripeService,
)

logger = logging.getLogger(__name__)

AcceptOutcome = Union[AcceptSucceeded, AcceptRequiresAction, AcceptFailed]

CAPTURE_WITHOUT_BOOKING_MARKER = "booking.capture_without_booking"


@dataclass(frozen=True)
class _RequestSnapshot:
    """Plain values read from the request before any commit or rollback expires it."""

    request_id: str
    listing_id: str
    listing_title: str
    price_cents: int
    duration_minutes: Optional[int]
    coach_id: str
    coach_email: str
    coach_name: str
    athlete_id: str
    athlete_email: str
    athlete_name: str
    conversation_id: Optional[str]
    starts_at: datetime
    ends_at: datetime
    timezone: str
    payment_method_id: Optional[str]
    capture_attempt: int

    @classmethod
    def of(cls, request: BookingRequest) -> "_RequestSnapshot":
        return cls(
            request_id=request.id,
            listing_id=request.listing_id,
            listing_title=request.listing.title,
            price_cents=int(request.listing.price_cents),
            duration_minutes=request.listing.duration_minutes,
            coach_id=request.coach_id,
            coach_email=request.coach.email,
            coach_name=request.coach.display_name,
            athlete_id=request.athlete_id,
            athlete_email=request.athlete.email,
            athlete_name=request.athlete.display_name,
            conversation_id=request.conversation_id,
            starts_at=request.proposed_start,
            ends_at=request.proposed_end,
            timezone=request.timezone or "UTC",
            payment_method_id=request.payment_method_id,
            capture_attempt=int(request.capture_attempt or 0),
        )


def payment_completion_url(client_secret: str, conversation_id: Optional[str]) -> str:
    query = urlencode(
        {"payment_intent_client_secret": client_secret, "conversation_id": conversation_id or ""}
    )
    return f"{settings.frontend_url}/payment/complete?{query}"


class BookingRequestService(BaseService):
    """Coach accept/decline of booking requests."""

    def __init__(
        self,
        db: Session,
        stripe_service: Optional[StripeService] = None,
        commission_service: Optional[CommissionService] = None,
        meeting_service: Optional[MeetingService] = None,
        notification_service: Optional[NotificationService] = None,
    ):
        super().__init__(db)
        self.request_repository = RepositoryFactory.create_booking_request_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.profile_repository = RepositoryFactory.create_profile_repository(db)
        self.stripe_service = stripe_service or StripeService(db)
        self.commission_service = commission_service or CommissionService(db)
        self.meeting_service = meeting_service or MeetingService(build_zoom_client())
        self.notification_service = notification_service or NotificationService(db)

    def _load_pending_for_coach(self, request_id: str, coach_id: str) -> BookingRequest:
        request = self.request_repository.get_with_details(request_id)
        if request is None:
            raise NotFoundException("Booking request not found", code="BOOKING_REQUEST_NOT_FOUND")
        if request.coach_id != coach_id:
            raise ForbiddenException("You can only respond to your own booking requests")
        if request.status != BookingRequestStatus.PENDING.value:
            raise NotFoundException(
                "Booking request not found or already processed",
                code="BOOKING_REQUEST_NOT_PENDING",
                details={"status": request.status},
            )
        return request

    @BaseService.measure_operation("accept_booking_request")
    def accept_request(self, request_id: str, coach_id: str) -> AcceptOutcome:
        """
        Accept a pending request, charging the athlete.

        Returns a success, requires-action or failure result. Payment problems
        are results, not exceptions; the request stays pending so the coach
        can retry once the athlete fixes their card.

        Raises:
            NotFoundException: request missing or no longer pending
            ForbiddenException: request belongs to another coach
            MissingPaymentMethodException: no saved card on the request
            CoachPayoutNotConfiguredException: coach has no payout account
            AlreadyProcessedException: a concurrent transition won
            CaptureWithoutBookingException: charged but the booking could not be saved
        """
        request = self._load_pending_for_coach(request_id, coach_id)
        snapshot = _RequestSnapshot.of(request)
        if not snapshot.payment_method_id:
            raise MissingPaymentMethodException(request_id)

        destination_account = self.profile_repository.get_coach_payout_account(coach_id)
        if not destination_account:
            self.logger.warning(f"Coach {coach_id} accepted {request_id} without payout setup")
            raise CoachPayoutNotConfiguredException(coach_id)

        fees = self._current_fees(snapshot.price_cents)

        customer_id = self.stripe_service.find_or_create_customer(
            email=snapshot.athlete_email,
            name=snapshot.athlete_name,
            athlete_id=snapshot.athlete_id,
        )
        attach_declined = self.stripe_service.attach_payment_method(
            payment_method_id=snapshot.payment_method_id, customer_id=customer_id
        )
        if attach_declined is not None:
            return self._payment_failed(snapshot, attach_declined)

        capture = self.stripe_service.capture_payment(
            request_id=request_id,
            amount_cents=snapshot.price_cents,
            customer_id=customer_id,
            payment_method_id=snapshot.payment_method_id,
            destination_account_id=destination_account,
            application_fee_cents=fees.platform_cut_cents,
            description=f"{snapshot.listing_title} with {snapshot.coach_name}",
            metadata={
                "listing_id": snapshot.listing_id,
                "coach_id": snapshot.coach_id,
                "athlete_id": snapshot.athlete_id,
            },
            attempt=snapshot.capture_attempt,
        )

        if isinstance(capture, CaptureInProgress):
            prometheus_metrics.inc_accept_outcome("already_processed")
            self.logger.info(f"Booking request {request_id} is already being charged by another accept")
            raise AlreadyProcessedException("booking request", request_id)
        if isinstance(capture, CaptureRequiresAction):
            return self._requires_action(request, snapshot, capture)
        if isinstance(capture, CaptureDeclined):
            return self._payment_failed(snapshot, capture)
        return self._record_acceptance(snapshot, capture.payment_intent_id, fees.platform_cut_cents)

    def _requires_action(
        self, request: BookingRequest, snapshot: _RequestSnapshot, capture: CaptureRequiresAction
    ) -> AcceptRequiresAction:
        with self.transaction():
            request.pending_payment_intent_id = capture.payment_intent_id

        completion_url = payment_completion_url(capture.client_secret, snapshot.conversation_id)
        self.notification_service.post_system_message(
            snapshot.conversation_id,
            "🔐 Payment requires additional authentication. "
            f"Please complete your payment using this secure link: {completion_url}",
            kind=MESSAGE_KIND_PAYMENT_ACTION_REQUIRED,
            metadata={"request_id": snapshot.request_id, "payment_intent_id": capture.payment_intent_id},
        )
        prometheus_metrics.inc_accept_outcome("requires_action")
        self.logger.info(
            f"Booking request {snapshot.request_id} awaiting athlete authentication "
            f"for intent {capture.payment_intent_id}"
        )
        return AcceptRequiresAction(
            request_id=snapshot.request_id,
            payment_intent_id=capture.payment_intent_id,
            completion_url=completion_url,
            message="Payment requires additional authentication. Check the chat for payment link.",
        )

    def _payment_failed(self, snapshot: _RequestSnapshot, declined: CaptureDeclined) -> AcceptFailed:
        with self.transaction():
            self.request_repository.bump_capture_attempt(snapshot.request_id)
        self.notification_service.post_system_message(
            snapshot.conversation_id,
            f"❌ {declined.message}",
            kind=MESSAGE_KIND_PAYMENT_FAILED,
            metadata={"request_id": snapshot.request_id, "reason_code": declined.reason_code},
        )
        prometheus_metrics.inc_accept_outcome("failure")
        self.logger.info(
            f"Payment failed for booking request {snapshot.request_id}: {declined.reason_code}"
        )
        return AcceptFailed(
            request_id=snapshot.request_id,
            reason_code=declined.reason_code,
            message=declined.message,
        )

    def _record_acceptance(
        self, snapshot: _RequestSnapshot, payment_intent_id: str, platform_fee_cents: int
    ) -> AcceptSucceeded:
        """Steps after a confirmed capture. Must not be abandoned once money has moved."""
        booking = self._persist_booking(snapshot, payment_intent_id, platform_fee_cents)

        meeting = self.meeting_service.provision(
            listing_title=snapshot.listing_title,
            athlete_name=snapshot.athlete_name,
            start_time=snapshot.starts_at,
            duration_minutes=snapshot.duration_minutes,
            host_email=snapshot.coach_email,
            booking_request_id=snapshot.request_id,
        )
        if meeting is not None:
            self._attach_meeting(snapshot, booking, meeting)

        self._announce_acceptance(snapshot, booking)
        prometheus_metrics.inc_accept_outcome("success")
        self.log_operation(
            "booking_request_accepted",
            request_id=snapshot.request_id,
            booking_id=booking.id,
            payment_intent_id=payment_intent_id,
        )
        return AcceptSucceeded(
            request_id=snapshot.request_id,
            booking_id=booking.id,
            payment_intent_id=payment_intent_id,
            amount_paid_cents=booking.amount_paid_cents,
            platform_fee_cents=booking.platform_fee_cents,
            meeting_join_url=booking.meeting_join_url,
            meeting_host_url=booking.meeting_host_url,
        )

    def _persist_booking(
        self,
        snapshot: _RequestSnapshot,
        payment_intent_id: str,
        platform_fee_cents: int,
    ) -> Booking:
        """Insert the booking and flip the request in one transaction."""
        try:
            with self.transaction():
                booking = self.booking_repository.create(
                    listing_id=snapshot.listing_id,
                    coach_id=snapshot.coach_id,
                    athlete_id=snapshot.athlete_id,
                    customer_email=snapshot.athlete_email,
                    conversation_id=snapshot.conversation_id,
                    booking_request_id=snapshot.request_id,
                    amount_paid_cents=snapshot.price_cents,
                    platform_fee_cents=platform_fee_cents,
                    payment_intent_id=payment_intent_id,
                    status=BookingStatus.PAID.value,
                    booking_type=BookingType.LIVE_LESSON.value,
                    starts_at=snapshot.starts_at,
                    ends_at=snapshot.ends_at,
                    timezone=snapshot.timezone,
                )
                won = self.request_repository.try_transition(
                    snapshot.request_id,
                    BookingRequestStatus.PENDING.value,
                    BookingRequestStatus.ACCEPTED.value,
                )
                if not won:
                    raise AlreadyProcessedException("booking request", snapshot.request_id)
            return booking
        except AlreadyProcessedException:
            self._handle_lost_transition(snapshot, payment_intent_id)
            raise
        except (RepositoryException, ServiceException) as exc:
            if self._booking_exists_for(snapshot.request_id, payment_intent_id):
                self._handle_lost_transition(snapshot, payment_intent_id)
                raise AlreadyProcessedException("booking request", snapshot.request_id) from exc
            self.logger.critical(
                f"{CAPTURE_WITHOUT_BOOKING_MARKER} request={snapshot.request_id} "
                f"payment_intent={payment_intent_id}: {exc}",
                extra={
                    "marker": CAPTURE_WITHOUT_BOOKING_MARKER,
                    "request_id": snapshot.request_id,
                    "payment_intent_id": payment_intent_id,
                    "amount_cents": snapshot.price_cents,
                },
            )
            prometheus_metrics.inc_accept_outcome("capture_without_booking")
            raise CaptureWithoutBookingException(snapshot.request_id, payment_intent_id) from exc

    def _attach_meeting(
        self, snapshot: _RequestSnapshot, booking: Booking, meeting: MeetingDetails
    ) -> None:
        try:
            with self.transaction():
                booking.meeting_id = meeting.meeting_id
                booking.meeting_join_url = meeting.join_url
                booking.meeting_host_url = meeting.host_url
        except ServiceException as exc:
            prometheus_metrics.inc_side_effect_failure("booking.attach_meeting")
            self.logger.error(
                f"Meeting {meeting.meeting_id} created for booking {booking.id} "
                f"(request {snapshot.request_id}) but not saved: {exc}"
            )

    def _booking_exists_for(self, request_id: str, payment_intent_id: str) -> bool:
        try:
            existing = self.booking_repository.get_by_request_id(request_id)
        except RepositoryException:
            return False
        return existing is not None and existing.payment_intent_id == payment_intent_id

    def _handle_lost_transition(self, snapshot: _RequestSnapshot, payment_intent_id: str) -> None:
        """
        Another transition beat this capture to the request.

        A racing accept shares the capture through its idempotency key, so
        nothing is owed back. If the request was declined or expired instead,
        the charge has no booking and is refunded.
        """
        prometheus_metrics.inc_accept_outcome("already_processed")
        current = self.request_repository.get_by_id(snapshot.request_id)
        status = current.status if current is not None else None
        self.logger.warning(
            f"Lost accept race for booking request {snapshot.request_id} (now {status})"
        )
        if status == BookingRequestStatus.ACCEPTED.value:
            return

        refund = run_best_effort(
            "refund.orphaned_capture",
            lambda: self.stripe_service.refund(
                payment_intent_id, metadata={"booking_request_id": snapshot.request_id}
            ),
        )
        if refund is None:
            self.logger.critical(
                f"{CAPTURE_WITHOUT_BOOKING_MARKER} request={snapshot.request_id} "
                f"payment_intent={payment_intent_id}: request is {status} and refund failed",
                extra={
                    "marker": CAPTURE_WITHOUT_BOOKING_MARKER,
                    "request_id": snapshot.request_id,
                    "payment_intent_id": payment_intent_id,
                },
            )

    def _announce_acceptance(self, snapshot: _RequestSnapshot, booking: Booking) -> None:
        session_time = format_for_timezone(snapshot.starts_at, snapshot.timezone)
        body = "✅ Booking accepted! Payment processed successfully."
        if booking.meeting_join_url:
            body += (
                f"\n\n🎥 Video meeting ready\n📅 {session_time}"
                f"\n\nFor athlete: {booking.meeting_join_url}"
                f"\n\nFor coach: {booking.meeting_host_url}"
            )
        metadata: Dict[str, Any] = {
            "type": MESSAGE_KIND_BOOKING_ACCEPTED,
            "booking_id": booking.id,
            "starts_at": snapshot.starts_at.isoformat(),
            "ends_at": snapshot.ends_at.isoformat(),
            "timezone": snapshot.timezone,
            "listing_title": snapshot.listing_title,
            "athlete_join_url": booking.meeting_join_url,
            "coach_start_url": booking.meeting_host_url,
            "amount_paid_cents": booking.amount_paid_cents,
        }
        self.notification_service.post_system_message(
            snapshot.conversation_id, body, kind=MESSAGE_KIND_BOOKING_ACCEPTED, metadata=metadata
        )

        join_url = booking.meeting_join_url
        amount = booking.amount_paid_cents
        self.notification_service.send_email(
            "booking_accepted",
            lambda email: email.send_booking_accepted(
                to_email=snapshot.athlete_email,
                athlete_name=snapshot.athlete_name,
                coach_name=snapshot.coach_name,
                listing_title=snapshot.listing_title,
                starts_at=snapshot.starts_at,
                timezone=snapshot.timezone,
                amount_paid_cents=amount,
                conversation_id=snapshot.conversation_id or "",
                join_url=join_url,
            ),
        )

    @BaseService.measure_operation("finalize_authenticated_payment")
    def finalize_authenticated_payment(
        self, request_id: str, payment_intent_id: str
    ) -> Optional[AcceptSucceeded]:
        """
        Finish an acceptance after the athlete authenticated the payment.

        Returns None when ``payment_intent_id`` is not the intent this request
        is waiting on (e.g. the synchronous accept already handled it).

        Raises:
            NotFoundException: unknown request
            AlreadyProcessedException: request is no longer pending
            ValidationException: the intent has not succeeded or is for another request
        """
        request = self.request_repository.get_with_details(request_id)
        if request is None:
            raise NotFoundException("Booking request not found", code="BOOKING_REQUEST_NOT_FOUND")
        if request.status != BookingRequestStatus.PENDING.value:
            raise AlreadyProcessedException("booking request", request_id, current_status=request.status)
        if request.pending_payment_intent_id != payment_intent_id:
            self.logger.info(
                f"Intent {payment_intent_id} is not awaiting authentication for {request_id}; ignoring"
            )
            return None

        snapshot = _RequestSnapshot.of(request)
        intent = self.stripe_service.retrieve_payment_intent(payment_intent_id)
        intent_metadata = getattr(intent, "metadata", None) or {}
        if intent_metadata.get("booking_request_id") != request_id:
            raise ValidationException(
                "Payment does not belong to this booking request", code="PAYMENT_REQUEST_MISMATCH"
            )
        if getattr(intent, "status", None) != "succeeded":
            raise ValidationException(
                f"Payment has not succeeded (status: {getattr(intent, 'status', None)})",
                code="PAYMENT_NOT_SUCCEEDED",
            )

        platform_fee = getattr(intent, "application_fee_amount", None)
        if platform_fee is None:
            platform_fee = self._current_fees(snapshot.price_cents).platform_cut_cents
        return self._record_acceptance(snapshot, payment_intent_id, int(platform_fee))

    def _current_fees(self, price_cents: int) -> FeeBreakdown:
        return compute_fees(price_cents, self.commission_service.get_settings().settings)

    @BaseService.measure_operation("decline_booking_request")
    def decline_request(self, request_id: str, coach_id: str) -> DeclineResponse:
        """
        Decline a pending request. Nothing was charged, so nothing is refunded.

        Raises:
            NotFoundException / ForbiddenException: as for accept
            AlreadyProcessedException: a concurrent transition won
        """
        request = self._load_pending_for_coach(request_id, coach_id)
        snapshot = _RequestSnapshot.of(request)

        with self.transaction():
            won = self.request_repository.try_transition(
                request_id, BookingRequestStatus.PENDING.value, BookingRequestStatus.DECLINED.value
            )
            if not won:
                raise AlreadyProcessedException("booking request", request_id)

        self.notification_service.post_system_message(
            snapshot.conversation_id,
            "Declined.",
            kind=MESSAGE_KIND_SYSTEM,
            metadata={"request_id": request_id, "status": BookingRequestStatus.DECLINED.value},
        )
        self.notification_service.send_email(
            "booking_declined",
            lambda email: email.send_booking_declined(
                to_email=snapshot.athlete_email,
                athlete_name=snapshot.athlete_name,
                coach_name=snapshot.coach_name,
                listing_title=snapshot.listing_title,
                starts_at=snapshot.starts_at,
                timezone=snapshot.timezone,
                conversation_id=snapshot.conversation_id or "",
            ),
        )
        self.log_operation("booking_request_declined", request_id=request_id, coach_id=coach_id)
        return DeclineResponse(request_id=request_id)
