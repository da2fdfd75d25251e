"""
Centralized email subject builders.

Keep subjects in code (not templates) for versioning and logging.
Bodies remain in Jinja templates.
"""

from app.core.constants import BRAND_NAME


class EmailSubject:
    """Utility class with static builders for email subjects."""

    @staticmethod
    def booking_request_accepted(listing_title: str) -> str:
        return f"Your session is confirmed: {listing_title}"

    @staticmethod
    def booking_request_declined(listing_title: str) -> str:
        return f"Update on your {listing_title} request"

    @staticmethod
    def booking_request_expired(listing_title: str) -> str:
        return f"Your {listing_title} request expired"

    @staticmethod
    def film_review_accepted(coach_name: str) -> str:
        return f"{coach_name} accepted your film review"

    @staticmethod
    def film_review_declined() -> str:
        return f"Your {BRAND_NAME} film review was declined"

    @staticmethod
    def film_review_completed(coach_name: str) -> str:
        return f"Your film review from {coach_name} is ready"
