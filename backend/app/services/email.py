# backend/app/services/email.py
"""
Email Service for the CoachLane Platform

Sends transactional email to athletes about their booking requests and film
reviews. Bodies are rendered from Jinja templates; subjects come from
``EmailSubject``.

Two providers are supported:
- ``console``: logs the message instead of sending it (development/tests)
- ``resend``: delivers through the Resend API

Callers in the booking workflows wrap these sends in ``run_best_effort`` so a
delivery failure never fails the booking transition.
"""

from datetime import datetime
import logging
import re
from typing import Any, Dict, Optional

import resend
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ServiceException
from ..core.timezone_utils import format_for_timezone
from .base import BaseService
from .email_subjects import EmailSubject
from .template_registry import TemplateRegistry
from .template_service import TemplateService

logger = logging.getLogger(__name__)


class EmailService(BaseService):
    """
    Service for sending booking and film review emails.

    Raises ``ServiceException`` on delivery failure; it is up to the caller
    whether that is fatal.
    """

    def __init__(self, db: Session, template_service: Optional[TemplateService] = None):
        super().__init__(db)
        self.provider = settings.email_provider
        self.from_email = settings.from_email
        self.template_service = template_service or TemplateService()

        if self.provider == "resend":
            if not settings.resend_api_key:
                raise ServiceException("Resend API key not configured")
            resend.api_key = settings.resend_api_key

    def _html_to_text(self, html_content: str) -> str:
        """Convert HTML content to plain text for better deliverability"""
        text = re.sub(r"<[^>]+>", "", html_content)
        text = re.sub(r"\s+", " ", text)
        return text.strip()

    @BaseService.measure_operation("send_email")
    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send a single email through the configured provider.

        Returns:
            Provider response (``{"id": "console"}`` for the console provider)

        Raises:
            ServiceException: If email sending fails
        """
        if not text_content:
            text_content = self._html_to_text(html_content)

        if self.provider == "console":
            self.logger.info(f"[EMAIL:console] to={to_email} subject={subject!r}\n{text_content}")
            return {"id": "console"}

        email_data = {
            "from": self.from_email,
            "to": to_email,
            "subject": subject,
            "html": html_content,
            "text": text_content,
        }
        try:
            response = resend.Emails.send(email_data)
        except Exception as e:
            self.logger.error(f"Failed to send email to {to_email}: {str(e)}")
            self.log_operation("email_failed", to_email=to_email, subject=subject, error=str(e))
            raise ServiceException(f"Email sending failed: {str(e)}")

        self.logger.info(f"Email sent successfully to {to_email} - Subject: {subject}")
        self.log_operation("email_sent", to_email=to_email, subject=subject)
        return dict(response) if response else {}

    def _render_and_send(
        self, to_email: str, subject: str, template: TemplateRegistry, **context: Any
    ) -> Dict[str, Any]:
        html_content = self.template_service.render_template(template, context)
        return self.send_email(to_email=to_email, subject=subject, html_content=html_content)

    # Booking requests

    def send_booking_accepted(
        self,
        *,
        to_email: str,
        athlete_name: str,
        coach_name: str,
        listing_title: str,
        starts_at: datetime,
        timezone: str,
        amount_paid_cents: int,
        conversation_id: str,
        join_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self._render_and_send(
            to_email,
            EmailSubject.booking_request_accepted(listing_title),
            TemplateRegistry.BOOKING_REQUEST_ACCEPTED,
            athlete_name=athlete_name,
            coach_name=coach_name,
            listing_title=listing_title,
            session_time=format_for_timezone(starts_at, timezone),
            amount_paid_cents=amount_paid_cents,
            join_url=join_url,
            chat_url=settings.chat_url(conversation_id),
        )

    def send_booking_declined(
        self,
        *,
        to_email: str,
        athlete_name: str,
        coach_name: str,
        listing_title: str,
        starts_at: datetime,
        timezone: str,
        conversation_id: str,
    ) -> Dict[str, Any]:
        return self._render_and_send(
            to_email,
            EmailSubject.booking_request_declined(listing_title),
            TemplateRegistry.BOOKING_REQUEST_DECLINED,
            athlete_name=athlete_name,
            coach_name=coach_name,
            listing_title=listing_title,
            session_time=format_for_timezone(starts_at, timezone),
            chat_url=settings.chat_url(conversation_id),
        )

    def send_booking_expired(
        self,
        *,
        to_email: str,
        athlete_name: str,
        listing_title: str,
        starts_at: datetime,
        timezone: str,
        conversation_id: str,
    ) -> Dict[str, Any]:
        return self._render_and_send(
            to_email,
            EmailSubject.booking_request_expired(listing_title),
            TemplateRegistry.BOOKING_REQUEST_EXPIRED,
            athlete_name=athlete_name,
            listing_title=listing_title,
            session_time=format_for_timezone(starts_at, timezone),
            expiry_hours=settings.booking_request_expiry_hours,
            chat_url=settings.chat_url(conversation_id),
        )

    # Film reviews

    def send_film_review_accepted(
        self, *, to_email: str, coach_name: str, listing_title: str, deadline_at: datetime
    ) -> Dict[str, Any]:
        return self._render_and_send(
            to_email,
            EmailSubject.film_review_accepted(coach_name),
            TemplateRegistry.FILM_REVIEW_ACCEPTED,
            coach_name=coach_name,
            listing_title=listing_title,
            deadline=format_for_timezone(deadline_at, "UTC"),
        )

    def send_film_review_declined(
        self,
        *,
        to_email: str,
        coach_name: str,
        listing_title: str,
        amount_paid_cents: int,
        refund_issued: bool,
    ) -> Dict[str, Any]:
        return self._render_and_send(
            to_email,
            EmailSubject.film_review_declined(),
            TemplateRegistry.FILM_REVIEW_DECLINED,
            coach_name=coach_name,
            listing_title=listing_title,
            amount_paid_cents=amount_paid_cents,
            refund_issued=refund_issued,
        )

    def send_film_review_completed(
        self,
        *,
        to_email: str,
        coach_name: str,
        listing_title: str,
        overall_assessment: str,
        booking_id: str,
    ) -> Dict[str, Any]:
        return self._render_and_send(
            to_email,
            EmailSubject.film_review_completed(coach_name),
            TemplateRegistry.FILM_REVIEW_COMPLETED,
            coach_name=coach_name,
            listing_title=listing_title,
            overall_assessment=overall_assessment,
            review_url=f"{settings.frontend_url}/film-reviews/{booking_id}",
        )
