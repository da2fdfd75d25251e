"""
Template registry for strongly-typed access to Jinja templates.

Use with TemplateService to avoid stringly-typed paths.
"""

from enum import Enum


class TemplateRegistry(str, Enum):
    # Booking requests (athlete-facing)
    BOOKING_REQUEST_ACCEPTED = "email/booking_request/accepted.html"
    BOOKING_REQUEST_DECLINED = "email/booking_request/declined.html"
    BOOKING_REQUEST_EXPIRED = "email/booking_request/expired.html"

    # Film reviews (athlete-facing)
    FILM_REVIEW_ACCEPTED = "email/film_review/accepted.html"
    FILM_REVIEW_DECLINED = "email/film_review/declined.html"
    FILM_REVIEW_COMPLETED = "email/film_review/completed.html"
