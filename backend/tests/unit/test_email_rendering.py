"""Tests for email templates, subjects and provider dispatch."""

from datetime import datetime, timezone
from unittest.mock import patch

from jinja2 import UndefinedError
import pytest

from app.core.config import settings
from app.core.exceptions import ServiceException
from app.core.timezone_utils import format_for_timezone
from app.services.email import EmailService
from app.services.email_subjects import EmailSubject
from app.services.template_registry import TemplateRegistry
from app.services.template_service import TemplateService

STARTS_AT = datetime(2026, 5, 2, 18, 0, tzinfo=timezone.utc)


@pytest.fixture
def template_service() -> TemplateService:
    return TemplateService()


class TestTemplates:
    def test_expired_template_renders_context(self, template_service):
        html = template_service.render_template(
            TemplateRegistry.BOOKING_REQUEST_EXPIRED,
            {
                "athlete_name": "Avery",
                "listing_title": "Pitching Mechanics",
                "session_time": "Sat, May 02, 2026 at 02:00 PM EDT",
                "expiry_hours": 72,
                "chat_url": "http://localhost:3000/messages/conv_1",
            },
        )

        assert "Hi Avery," in html
        assert "within 72 hours" in html
        assert "You have not been charged." in html
        assert "CoachLane" in html

    def test_cents_filter(self, template_service):
        html = template_service.render_template(
            TemplateRegistry.FILM_REVIEW_DECLINED,
            coach_name="Casey",
            listing_title="Swing Breakdown",
            amount_paid_cents=5000,
            refund_issued=True,
        )

        assert "$50.00" in html
        assert "on its way" in html

    def test_user_content_is_escaped(self, template_service):
        html = template_service.render_template(
            TemplateRegistry.FILM_REVIEW_COMPLETED,
            coach_name="<script>alert(1)</script>",
            listing_title="Swing Breakdown",
            overall_assessment="Good",
            review_url="http://localhost:3000/film-reviews/bk_1",
        )

        assert "<script>" not in html

    def test_missing_variable_fails_loudly(self, template_service):
        with pytest.raises(UndefinedError):
            template_service.render_template(TemplateRegistry.BOOKING_REQUEST_EXPIRED, {})


class TestSubjects:
    def test_subjects(self):
        assert EmailSubject.booking_request_accepted("Pitching") == "Your session is confirmed: Pitching"
        assert EmailSubject.booking_request_expired("Pitching") == "Your Pitching request expired"
        assert EmailSubject.film_review_declined() == "Your CoachLane film review was declined"


class TestTimezoneFormatting:
    def test_rendered_in_athlete_timezone(self):
        assert format_for_timezone(STARTS_AT, "America/New_York") == "Sat, May 02, 2026 at 02:00 PM EDT"

    def test_unknown_timezone_falls_back_to_utc(self):
        assert format_for_timezone(STARTS_AT, "Mars/Olympus") == "Sat, May 02, 2026 at 06:00 PM UTC"

    def test_naive_values_are_treated_as_utc(self):
        naive = STARTS_AT.replace(tzinfo=None)
        assert format_for_timezone(naive, "UTC") == format_for_timezone(STARTS_AT, "UTC")


class TestEmailService:
    def test_console_provider_does_not_send(self, db):
        with patch("app.services.email.resend.Emails.send") as mock_send:
            result = EmailService(db).send_booking_expired(
                to_email="athlete@example.com",
                athlete_name="Avery",
                listing_title="Pitching Mechanics",
                starts_at=STARTS_AT,
                timezone="America/New_York",
                conversation_id="conv_1",
            )

        assert result == {"id": "console"}
        mock_send.assert_not_called()

    def test_resend_provider_delivers(self, db):
        with patch.object(settings, "email_provider", "resend"), patch.object(
            settings, "resend_api_key", "re_test"
        ), patch("app.services.email.resend.Emails.send") as mock_send:
            mock_send.return_value = {"id": "email_123"}
            result = EmailService(db).send_booking_declined(
                to_email="athlete@example.com",
                athlete_name="Avery",
                coach_name="Casey",
                listing_title="Pitching Mechanics",
                starts_at=STARTS_AT,
                timezone="America/New_York",
                conversation_id="conv_1",
            )

        assert result == {"id": "email_123"}
        payload = mock_send.call_args[0][0]
        assert payload["to"] == "athlete@example.com"
        assert payload["subject"] == "Update on your Pitching Mechanics request"
        assert "<" not in payload["text"]

    def test_resend_failure_raises_service_exception(self, db):
        with patch.object(settings, "email_provider", "resend"), patch.object(
            settings, "resend_api_key", "re_test"
        ), patch("app.services.email.resend.Emails.send") as mock_send:
            mock_send.side_effect = RuntimeError("rate limited")
            with pytest.raises(ServiceException):
                EmailService(db).send_email("athlete@example.com", "Hi", "<p>Hi</p>")

    def test_resend_without_key_is_rejected(self, db):
        with patch.object(settings, "email_provider", "resend"), patch.object(
            settings, "resend_api_key", None
        ):
            with pytest.raises(ServiceException):
                EmailService(db)
