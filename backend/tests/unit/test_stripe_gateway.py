# backend/tests/unit/test_stripe_gateway.py
"""
Unit tests for StripeService. The stripe SDK is patched at the call site;
no request leaves the process.
"""

from unittest.mock import MagicMock, patch

from pydantic import SecretStr
import pytest
import stripe

from app.core.config import settings
from app.core.exceptions import (
    PaymentOutcomeUnknownException,
    ServiceException,
    ValidationException,
)
from app.services.stripe_service import (
    CaptureDeclined,
    CaptureInProgress,
    CaptureRequiresAction,
    CaptureSucceeded,
    StripeService,
    capture_idempotency_key,
    describe_decline,
)


@pytest.fixture
def stripe_service(db) -> StripeService:
    service = StripeService(db)
    service.stripe_configured = True
    return service


def _capture(service: StripeService, **overrides):
    kwargs = {
        "request_id": "req_1",
        "amount_cents": 10000,
        "customer_id": "cus_1",
        "payment_method_id": "pm_1",
        "destination_account_id": "acct_coach",
        "application_fee_cents": 1000,
        "description": "Pitching Mechanics with Casey Coach",
        "metadata": {"listing_id": "lst_1"},
    }
    kwargs.update(overrides)
    return service.capture_payment(**kwargs)


def _card_error(code="card_declined", decline_code=None, payment_intent=None):
    error = stripe.CardError("Your card was declined.", "payment_method", code)
    error.error = MagicMock(decline_code=decline_code, payment_intent=payment_intent)
    return error


class TestHelpers:
    def test_idempotency_key_is_per_request_card_and_attempt(self):
        assert capture_idempotency_key("req_1", "pm_1") == "booking-request:req_1:attempt:0:pm:pm_1"
        assert capture_idempotency_key("req_1", "pm_1") != capture_idempotency_key("req_1", "pm_2")
        assert capture_idempotency_key("req_1", "pm_1", 1) == "booking-request:req_1:attempt:1:pm:pm_1"

    def test_describe_decline(self):
        assert describe_decline("insufficient_funds") == (
            "Insufficient funds. Please use a different payment method."
        )
        assert describe_decline("weird_code", "Do not honor") == "Payment failed: Do not honor"
        assert describe_decline(None) == "Payment failed. Please try again."


class TestNotConfigured:
    def test_calls_fail_without_secret_key(self, db):
        service = StripeService(db)
        service.stripe_configured = False

        with pytest.raises(ServiceException):
            service.find_or_create_customer(email="a@example.com", name="A", athlete_id="ath_1")


class TestCustomer:
    @patch("stripe.Customer.create")
    @patch("stripe.Customer.list")
    def test_existing_customer_is_reused(self, mock_list, mock_create, stripe_service):
        mock_list.return_value = MagicMock(data=[MagicMock(id="cus_existing")])

        customer_id = stripe_service.find_or_create_customer(
            email="athlete@example.com", name="Avery", athlete_id="ath_1"
        )

        assert customer_id == "cus_existing"
        mock_create.assert_not_called()

    @patch("stripe.Customer.create")
    @patch("stripe.Customer.list")
    def test_customer_created_when_missing(self, mock_list, mock_create, stripe_service):
        mock_list.return_value = MagicMock(data=[])
        mock_create.return_value = MagicMock(id="cus_new")

        customer_id = stripe_service.find_or_create_customer(
            email="athlete@example.com", name="Avery", athlete_id="ath_1"
        )

        assert customer_id == "cus_new"
        assert mock_create.call_args.kwargs["metadata"] == {"athlete_id": "ath_1"}

    @patch("stripe.Customer.list")
    def test_stripe_error_becomes_service_exception(self, mock_list, stripe_service):
        mock_list.side_effect = stripe.APIConnectionError("timeout")

        with pytest.raises(ServiceException):
            stripe_service.find_or_create_customer(
                email="athlete@example.com", name="Avery", athlete_id="ath_1"
            )


class TestAttachPaymentMethod:
    @patch("stripe.PaymentMethod.attach")
    def test_attach(self, mock_attach, stripe_service):
        assert stripe_service.attach_payment_method(payment_method_id="pm_1", customer_id="cus_1") is None
        mock_attach.assert_called_once_with("pm_1", customer="cus_1")

    @patch("stripe.PaymentMethod.retrieve")
    @patch("stripe.PaymentMethod.attach")
    def test_already_attached_counts_as_success(self, mock_attach, mock_retrieve, stripe_service):
        mock_attach.side_effect = stripe.InvalidRequestError(
            "The payment method is already attached", "payment_method"
        )
        mock_retrieve.return_value = MagicMock(customer="cus_1")

        assert stripe_service.attach_payment_method(payment_method_id="pm_1", customer_id="cus_1") is None

    @patch("stripe.PaymentMethod.retrieve")
    @patch("stripe.PaymentMethod.attach")
    def test_attached_elsewhere_is_an_error(self, mock_attach, mock_retrieve, stripe_service):
        mock_attach.side_effect = stripe.InvalidRequestError("No such PaymentMethod", "payment_method")
        mock_retrieve.return_value = MagicMock(customer="cus_other")

        with pytest.raises(ServiceException):
            stripe_service.attach_payment_method(payment_method_id="pm_1", customer_id="cus_1")

    @patch("stripe.PaymentMethod.attach")
    def test_card_rejected_is_a_decline(self, mock_attach, stripe_service):
        mock_attach.side_effect = _card_error(code="expired_card")

        result = stripe_service.attach_payment_method(payment_method_id="pm_1", customer_id="cus_1")

        assert isinstance(result, CaptureDeclined)
        assert result.reason_code == "expired_card"
        assert result.message == "Your card has expired. Please update your payment method."


class TestCapturePayment:
    @patch("stripe.PaymentIntent.create")
    def test_success(self, mock_create, stripe_service):
        mock_create.return_value = MagicMock(id="pi_1", status="succeeded")

        result = _capture(stripe_service)

        assert result == CaptureSucceeded(payment_intent_id="pi_1")
        kwargs = mock_create.call_args.kwargs
        assert kwargs["amount"] == 10000
        assert kwargs["application_fee_amount"] == 1000
        assert kwargs["transfer_data"] == {"destination": "acct_coach"}
        assert kwargs["off_session"] is True
        assert kwargs["confirm"] is True
        assert kwargs["metadata"] == {"booking_request_id": "req_1", "listing_id": "lst_1"}
        assert kwargs["idempotency_key"] == "booking-request:req_1:attempt:0:pm:pm_1"

    @patch("stripe.PaymentIntent.create")
    def test_requires_action_status(self, mock_create, stripe_service):
        mock_create.return_value = MagicMock(
            id="pi_3ds", status="requires_action", client_secret="pi_3ds_secret"
        )

        result = _capture(stripe_service)

        assert result == CaptureRequiresAction(payment_intent_id="pi_3ds", client_secret="pi_3ds_secret")

    @patch("stripe.PaymentIntent.create")
    def test_card_error_with_intent_needing_authentication(self, mock_create, stripe_service):
        intent = MagicMock(id="pi_auth", status="requires_action", client_secret="pi_auth_secret")
        mock_create.side_effect = _card_error(code="authentication_required", payment_intent=intent)

        result = _capture(stripe_service)

        assert result == CaptureRequiresAction(payment_intent_id="pi_auth", client_secret="pi_auth_secret")

    @patch("stripe.PaymentIntent.create")
    def test_insufficient_funds_decline(self, mock_create, stripe_service):
        mock_create.side_effect = _card_error(code="card_declined", decline_code="insufficient_funds")

        result = _capture(stripe_service)

        assert isinstance(result, CaptureDeclined)
        assert result.reason_code == "insufficient_funds"
        assert result.message == "Insufficient funds. Please use a different payment method."

    @patch("stripe.PaymentIntent.create")
    def test_attempt_number_changes_the_key(self, mock_create, stripe_service):
        mock_create.return_value = MagicMock(id="pi_2", status="succeeded")

        _capture(stripe_service, attempt=2)

        assert mock_create.call_args.kwargs["idempotency_key"] == "booking-request:req_1:attempt:2:pm:pm_1"

    @patch("stripe.PaymentIntent.create")
    def test_overlapping_request_is_in_progress_not_declined(self, mock_create, stripe_service):
        mock_create.side_effect = stripe.IdempotencyError(
            "There is currently another in-progress request using this Stripe API key."
        )

        result = _capture(stripe_service)

        assert result == CaptureInProgress()

    @patch("stripe.PaymentIntent.create")
    def test_unexpected_status_is_a_decline(self, mock_create, stripe_service):
        mock_create.return_value = MagicMock(id="pi_x", status="requires_payment_method")

        result = _capture(stripe_service)

        assert isinstance(result, CaptureDeclined)
        assert result.reason_code == "requires_payment_method"
        assert result.payment_intent_id == "pi_x"

    @patch("stripe.PaymentIntent.search")
    @patch("stripe.PaymentIntent.create")
    def test_connection_error_reconciles_to_success(self, mock_create, mock_search, stripe_service):
        mock_create.side_effect = stripe.APIConnectionError("read timeout")
        mock_search.return_value = MagicMock(
            data=[
                MagicMock(id="pi_failed", status="requires_payment_method"),
                MagicMock(id="pi_ok", status="succeeded"),
            ]
        )

        result = _capture(stripe_service)

        assert result == CaptureSucceeded(payment_intent_id="pi_ok")
        assert "req_1" in mock_search.call_args.kwargs["query"]

    @patch("stripe.PaymentIntent.search")
    @patch("stripe.PaymentIntent.create")
    def test_connection_error_with_nothing_found_is_unknown(self, mock_create, mock_search, stripe_service):
        mock_create.side_effect = stripe.APIConnectionError("read timeout")
        mock_search.return_value = MagicMock(data=[])

        with pytest.raises(PaymentOutcomeUnknownException) as exc_info:
            _capture(stripe_service)
        assert exc_info.value.status_code == 502

    @patch("stripe.PaymentIntent.search")
    @patch("stripe.PaymentIntent.create")
    def test_reconciliation_search_failure_is_unknown(self, mock_create, mock_search, stripe_service):
        mock_create.side_effect = stripe.APIConnectionError("read timeout")
        mock_search.side_effect = stripe.APIConnectionError("still down")

        with pytest.raises(PaymentOutcomeUnknownException):
            _capture(stripe_service)


class TestRefund:
    @patch("stripe.Refund.create")
    def test_full_refund_reverses_transfer(self, mock_refund, stripe_service):
        mock_refund.return_value = MagicMock(id="re_1", status="succeeded", amount=10000)

        result = stripe_service.refund("pi_1", metadata={"booking_request_id": "req_1"})

        assert result.refund_id == "re_1"
        assert result.amount_cents == 10000
        kwargs = mock_refund.call_args.kwargs
        assert kwargs["payment_intent"] == "pi_1"
        assert kwargs["reverse_transfer"] is True
        assert kwargs["refund_application_fee"] is True
        assert kwargs["idempotency_key"] == "refund:pi_1"

    @patch("stripe.Refund.create")
    def test_refund_failure_raises(self, mock_refund, stripe_service):
        mock_refund.side_effect = stripe.InvalidRequestError("Charge already refunded", "payment_intent")

        with pytest.raises(ServiceException):
            stripe_service.refund("pi_1")


class TestWebhookEvent:
    def test_missing_secret_is_configuration_error(self, stripe_service):
        with patch.object(settings, "stripe_webhook_secret", SecretStr("")):
            with pytest.raises(ServiceException):
                stripe_service.construct_webhook_event(b"{}", "sig")

    @patch("stripe.Webhook.construct_event")
    def test_bad_signature_is_validation_error(self, mock_construct, stripe_service):
        mock_construct.side_effect = stripe.SignatureVerificationError("bad", "sig")

        with patch.object(settings, "stripe_webhook_secret", SecretStr("whsec_test")):
            with pytest.raises(ValidationException):
                stripe_service.construct_webhook_event(b"{}", "sig")

    @patch("stripe.Webhook.construct_event")
    def test_verified_event_is_returned(self, mock_construct, stripe_service):
        mock_construct.return_value = {"type": "payment_intent.succeeded"}

        with patch.object(settings, "stripe_webhook_secret", SecretStr("whsec_test")):
            event = stripe_service.construct_webhook_event(b"{}", "sig")

        assert event["type"] == "payment_intent.succeeded"
        mock_construct.assert_called_once_with(b"{}", "sig", "whsec_test")
