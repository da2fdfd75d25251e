"""
Stripe Service for the CoachLane Platform

Payment gateway adapter for marketplace payments using Stripe Connect
destination charges. The platform keeps an application fee and the rest of
each charge is transferred to the coach's connected account.

Key Features:
- Customer lookup/creation by email
- Idempotent payment method attachment
- Off-session capture with client-side idempotency keys
- Reconciliation when a capture times out
- Full refunds and webhook signature verification
"""

from dataclasses import dataclass
import logging
from typing import Any, Dict, Literal, Optional, Union

from sqlalchemy.orm import Session
import stripe

from ..core.config import settings
from ..core.exceptions import (
    PaymentOutcomeUnknownException,
    ServiceException,
    ValidationException,
)
from .base import BaseService

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_DECLINE_MESSAGE = "Payment failed. Please try again."
DECLINE_MESSAGES: Dict[str, str] = {
    "authentication_required": "Payment authentication required. Please update your payment method.",
    "card_declined": "Payment was declined. Please try a different payment method.",
    "insufficient_funds": "Insufficient funds. Please use a different payment method.",
    "expired_card": "Your card has expired. Please update your payment method.",
}


@dataclass(frozen=True)
class CaptureSucceeded:
    payment_intent_id: str
    outcome: Literal["succeeded"] = "succeeded"


@dataclass(frozen=True)
class CaptureRequiresAction:
    payment_intent_id: str
    client_secret: str
    outcome: Literal["requires_action"] = "requires_action"


@dataclass(frozen=True)
class CaptureDeclined:
    reason_code: str
    message: str
    payment_intent_id: Optional[str] = None
    outcome: Literal["declined"] = "declined"


@dataclass(frozen=True)
class CaptureInProgress:
    """Stripe is still processing an earlier request with the same idempotency key."""

    outcome: Literal["in_progress"] = "in_progress"


CaptureResult = Union[CaptureSucceeded, CaptureRequiresAction, CaptureDeclined, CaptureInProgress]


@dataclass(frozen=True)
class RefundResult:
    refund_id: str
    status: str
    amount_cents: int


def describe_decline(code: Optional[str], message: Optional[str] = None) -> str:
    """Human-readable reason for a failed charge."""
    if code and code in DECLINE_MESSAGES:
        return DECLINE_MESSAGES[code]
    if message:
        return f"Payment failed: {message}"
    return DEFAULT_DECLINE_MESSAGE


def capture_idempotency_key(request_id: str, payment_method_id: str, attempt: int = 0) -> str:
    """
    One key per (request, card, attempt).

    Retries and racing accepts within an attempt replay the first response.
    A declined attempt bumps ``attempt`` so the next accept is a fresh charge.
    """
    return f"booking-request:{request_id}:attempt:{attempt}:pm:{payment_method_id}"


def _status_to_result(intent: Any) -> CaptureResult:
    status = getattr(intent, "status", None)
    if status == "succeeded":
        return CaptureSucceeded(payment_intent_id=intent.id)
    if status == "requires_action":
        return CaptureRequiresAction(
            payment_intent_id=intent.id, client_secret=str(getattr(intent, "client_secret", ""))
        )
    return CaptureDeclined(
        reason_code=str(status or "unknown"),
        message=(
            f"Payment failed with status: {status}. "
            "Please try again or update your payment method."
        ),
        payment_intent_id=getattr(intent, "id", None),
    )


def configure_stripe() -> bool:
    """Apply API key and network settings to the stripe module. Returns True if configured."""
    secret = settings.stripe_secret_key.get_secret_value()
    if not secret:
        return False
    stripe.api_key = secret
    # Mutating calls all carry idempotency keys
    stripe.default_http_client = stripe.RequestsClient(timeout=settings.stripe_timeout_seconds)
    stripe.max_network_retries = 1
    return True


class StripeService(BaseService):
    """
    Service for Stripe API interactions used by the booking workflows.

    Errors that mean "the card did not pay" come back as ``CaptureDeclined``.
    Errors that mean "we could not talk to Stripe" raise ``ServiceException``
    (or ``PaymentOutcomeUnknownException`` for an unreconciled capture).
    """

    def __init__(self, db: Session):
        super().__init__(db)
        self.stripe_configured = configure_stripe()
        if not self.stripe_configured:
            self.logger.warning("Stripe secret key not configured - payment calls will fail")
        self.currency = settings.stripe_currency

    def _check_stripe_configured(self) -> None:
        if not self.stripe_configured:
            raise ServiceException(
                "Stripe service not configured. Please check STRIPE_SECRET_KEY environment variable."
            )

    @BaseService.measure_operation("stripe_find_or_create_customer")
    def find_or_create_customer(
        self, *, email: str, name: Optional[str], athlete_id: str
    ) -> str:
        """Return the Stripe customer id for ``email``, creating one if needed."""
        self._check_stripe_configured()
        try:
            existing = stripe.Customer.list(email=email, limit=1)
            if existing.data:
                customer_id = str(existing.data[0].id)
                self.logger.info(f"Found existing Stripe customer {customer_id} for athlete {athlete_id}")
                return customer_id

            customer = stripe.Customer.create(
                email=email,
                name=name,
                metadata={"athlete_id": athlete_id},
            )
            self.logger.info(f"Created Stripe customer {customer.id} for athlete {athlete_id}")
            return str(customer.id)
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error resolving customer for athlete {athlete_id}: {str(e)}")
            raise ServiceException(f"Failed to resolve payment customer: {str(e)}")

    @BaseService.measure_operation("stripe_attach_payment_method")
    def attach_payment_method(
        self, *, payment_method_id: str, customer_id: str
    ) -> Optional[CaptureDeclined]:
        """
        Attach a saved payment method to a customer.

        Already attached to this customer counts as success. Returns a
        ``CaptureDeclined`` when Stripe rejects the card itself.
        """
        self._check_stripe_configured()
        try:
            stripe.PaymentMethod.attach(payment_method_id, customer=customer_id)
            self.logger.info(f"Attached payment method {payment_method_id} to {customer_id}")
            return None
        except stripe.CardError as e:
            self.logger.warning(f"Card rejected while attaching {payment_method_id}: {str(e)}")
            code = getattr(e, "code", None)
            return CaptureDeclined(
                reason_code=str(code or "card_error"),
                message=describe_decline(code, getattr(e, "user_message", None)),
            )
        except stripe.InvalidRequestError as e:
            if getattr(e, "code", None) == "resource_already_exists" or self._attached_to(
                payment_method_id, customer_id
            ):
                self.logger.info(f"Payment method {payment_method_id} already attached to {customer_id}")
                return None
            self.logger.error(f"Failed to attach payment method {payment_method_id}: {str(e)}")
            raise ServiceException(f"Failed to attach payment method: {str(e)}")
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error attaching payment method {payment_method_id}: {str(e)}")
            raise ServiceException(f"Failed to attach payment method: {str(e)}")

    def _attached_to(self, payment_method_id: str, customer_id: str) -> bool:
        try:
            pm = stripe.PaymentMethod.retrieve(payment_method_id)
        except stripe.StripeError:
            return False
        return getattr(pm, "customer", None) == customer_id

    @BaseService.measure_operation("stripe_capture_payment")
    def capture_payment(
        self,
        *,
        request_id: str,
        amount_cents: int,
        customer_id: str,
        payment_method_id: str,
        destination_account_id: str,
        application_fee_cents: int,
        description: str,
        metadata: Optional[Dict[str, str]] = None,
        attempt: int = 0,
    ) -> CaptureResult:
        """
        Charge the saved card off-session with a destination transfer to the coach.

        The idempotency key makes a retried or racing capture replay the first
        attempt instead of charging twice.
        """
        self._check_stripe_configured()
        intent_metadata = {"booking_request_id": request_id, **(metadata or {})}
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount_cents,
                currency=self.currency,
                customer=customer_id,
                payment_method=payment_method_id,
                confirm=True,
                off_session=True,
                application_fee_amount=application_fee_cents,
                transfer_data={"destination": destination_account_id},
                metadata=intent_metadata,
                description=description,
                idempotency_key=capture_idempotency_key(request_id, payment_method_id, attempt),
            )
        except stripe.CardError as e:
            return self._card_error_result(request_id, e)
        except stripe.IdempotencyError as e:
            self.logger.warning(
                f"Capture for booking request {request_id} overlaps an in-flight attempt: {str(e)}"
            )
            return CaptureInProgress()
        except stripe.APIConnectionError as e:
            self.logger.error(
                f"Capture for booking request {request_id} lost contact with Stripe: {str(e)}; reconciling"
            )
            return self._reconcile_capture(request_id)
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error capturing booking request {request_id}: {str(e)}")
            return CaptureDeclined(
                reason_code=str(getattr(e, "code", None) or "stripe_error"),
                message=describe_decline(getattr(e, "code", None), getattr(e, "user_message", None)),
            )

        result = _status_to_result(intent)
        self.logger.info(
            f"Capture for booking request {request_id}: intent {intent.id} status {intent.status}"
        )
        return result

    def _card_error_result(self, request_id: str, error: Any) -> CaptureResult:
        code = getattr(error, "code", None)
        error_object = getattr(error, "error", None)
        decline_code = getattr(error_object, "decline_code", None)
        intent = getattr(error_object, "payment_intent", None)
        if intent is not None and getattr(intent, "status", None) == "requires_action":
            return CaptureRequiresAction(
                payment_intent_id=str(intent.id), client_secret=str(intent.client_secret)
            )

        reason = decline_code if decline_code in DECLINE_MESSAGES else code
        self.logger.warning(
            f"Card declined for booking request {request_id}: code={code} decline_code={decline_code}"
        )
        return CaptureDeclined(
            reason_code=str(reason or "card_error"),
            message=describe_decline(reason, getattr(error, "user_message", None)),
            payment_intent_id=getattr(intent, "id", None),
        )

    def _reconcile_capture(self, request_id: str) -> CaptureResult:
        """Look for an intent Stripe created before the connection dropped."""
        try:
            found = stripe.PaymentIntent.search(
                query=f"metadata['booking_request_id']:'{request_id}'", limit=10
            )
        except stripe.StripeError as e:
            self.logger.error(f"Reconciliation search failed for booking request {request_id}: {str(e)}")
            raise PaymentOutcomeUnknownException(request_id)

        intents = list(getattr(found, "data", []) or [])
        if not intents:
            self.logger.error(f"No payment intent found while reconciling booking request {request_id}")
            raise PaymentOutcomeUnknownException(request_id)

        # A succeeded intent wins over earlier declined attempts
        for intent in intents:
            if getattr(intent, "status", None) == "succeeded":
                return CaptureSucceeded(payment_intent_id=intent.id)
        return _status_to_result(intents[0])

    @BaseService.measure_operation("stripe_retrieve_payment_intent")
    def retrieve_payment_intent(self, payment_intent_id: str) -> Any:
        self._check_stripe_configured()
        try:
            return stripe.PaymentIntent.retrieve(payment_intent_id)
        except stripe.StripeError as e:
            self.logger.error(f"Failed to retrieve payment intent {payment_intent_id}: {str(e)}")
            raise ServiceException(f"Failed to retrieve payment: {str(e)}")

    @BaseService.measure_operation("stripe_refund")
    def refund(
        self,
        payment_intent_id: str,
        *,
        reason: str = "requested_by_customer",
        metadata: Optional[Dict[str, str]] = None,
    ) -> RefundResult:
        """Full refund of a captured payment intent; the coach's transfer is reversed too."""
        self._check_stripe_configured()
        try:
            refund = stripe.Refund.create(
                payment_intent=payment_intent_id,
                reason=reason,
                reverse_transfer=True,
                refund_application_fee=True,
                metadata=metadata or {},
                idempotency_key=f"refund:{payment_intent_id}",
            )
        except stripe.StripeError as e:
            self.logger.error(f"Refund failed for payment intent {payment_intent_id}: {str(e)}")
            raise ServiceException(f"Failed to refund payment: {str(e)}")

        self.logger.info(f"Refund {refund.id} issued for payment intent {payment_intent_id}")
        return RefundResult(
            refund_id=str(refund.id),
            status=str(refund.status),
            amount_cents=int(getattr(refund, "amount", 0) or 0),
        )

    def construct_webhook_event(self, payload: bytes, signature: str) -> Any:
        """
        Verify the signature header and parse the event.

        Raises:
            ServiceException: webhook secret missing
            ValidationException: bad signature or malformed payload
        """
        secret = settings.stripe_webhook_secret.get_secret_value()
        if not secret:
            raise ServiceException("Webhook secret not configured")
        try:
            return stripe.Webhook.construct_event(payload, signature, secret)
        except stripe.SignatureVerificationError as e:
            self.logger.warning(f"Invalid webhook signature: {str(e)}")
            raise ValidationException("Invalid webhook signature")
        except ValueError as e:
            self.logger.warning(f"Invalid webhook payload: {str(e)}")
            raise ValidationException("Invalid webhook payload")
