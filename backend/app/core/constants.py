"""Application-wide constants for the CoachLane platform."""

from __future__ import annotations

BRAND_NAME = "CoachLane"
API_VERSION = "1.0.0"

# Booking request lifecycle
BOOKING_REQUEST_PENDING = "pending"
BOOKING_REQUEST_ACCEPTED = "accepted"
BOOKING_REQUEST_DECLINED = "declined"
BOOKING_REQUEST_EXPIRED = "expired"
BOOKING_REQUEST_TERMINAL_STATUSES = frozenset(
    {BOOKING_REQUEST_ACCEPTED, BOOKING_REQUEST_DECLINED, BOOKING_REQUEST_EXPIRED}
)

# Booking status
BOOKING_PAID = "paid"
BOOKING_COMPLETED = "completed"
BOOKING_CANCELLED = "cancelled"

# Booking types
BOOKING_TYPE_LIVE_LESSON = "live_lesson"
BOOKING_TYPE_FILM_REVIEW = "film_review"

# Film review lifecycle
REVIEW_PENDING_ACCEPTANCE = "pending_acceptance"
REVIEW_ACCEPTED = "accepted"
REVIEW_COMPLETED = "completed"
REVIEW_DECLINED = "declined"

# Message kinds
MESSAGE_KIND_TEXT = "text"
MESSAGE_KIND_SYSTEM = "system"
MESSAGE_KIND_BOOKING_ACCEPTED = "booking_accepted"
MESSAGE_KIND_PAYMENT_ACTION_REQUIRED = "payment_action_required"
MESSAGE_KIND_PAYMENT_FAILED = "payment_failed"

# Payout audit events
PAYOUT_EVENT_FILM_REVIEW_COMPLETED = "film_review_completed"
PAYOUT_STATUS_PENDING = "pending"

# Structured review minimums (characters)
REVIEW_MIN_OVERALL_ASSESSMENT = 200
REVIEW_MIN_STRENGTHS = 100
REVIEW_MIN_AREAS_FOR_IMPROVEMENT = 100
REVIEW_MIN_RECOMMENDED_DRILLS = 100

# Hosts accepted for a supplemental review document (subdomains included)
SUPPLEMENTAL_DOC_ALLOWED_HOSTS = (
    "docs.google.com",
    "drive.google.com",
    "dropbox.com",
    "dl.dropboxusercontent.com",
    "notion.so",
    "loom.com",
    "youtube.com",
    "youtu.be",
    "vimeo.com",
)

# Query limits
DEFAULT_QUERY_LIMIT = 100
SWEEP_BATCH_LIMIT = 500

# API metadata
API_TITLE = f"{BRAND_NAME} API"
API_DESCRIPTION = "Coach marketplace backend: booking requests, film reviews and commission settings."
