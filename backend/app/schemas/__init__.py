# backend/app/schemas/__init__.py
"""
Pydantic schemas for the CoachLane API.

Request models forbid unknown fields; response models are strict DTOs.
"""

# Booking request schemas - Coach accept/decline
from .booking_request import (
    AcceptFailed,
    AcceptRequiresAction,
    AcceptResult,
    AcceptSucceeded,
    DeclineResponse,
    SweepResponse,
)

# Commission schemas - Settings and fee breakdowns
from .commission import (
    CommissionSettings,
    CommissionSettingsLookup,
    CommissionSettingsResponse,
    CommissionSettingsUpdate,
    CommissionSettingsUpdateResponse,
    FeeBreakdown,
    FeeBreakdownResponse,
)

# Film review schemas
from .film_review import (
    FilmReviewAcceptResponse,
    FilmReviewCompleteResponse,
    FilmReviewDeclineResponse,
    FilmReviewDetail,
    StructuredReviewSubmission,
)
from .health import HealthResponse
from .webhook_responses import WebhookResponse

__all__ = [
    # Booking requests
    "AcceptSucceeded",
    "AcceptRequiresAction",
    "AcceptFailed",
    "AcceptResult",
    "DeclineResponse",
    "SweepResponse",
    # Commission
    "CommissionSettings",
    "CommissionSettingsLookup",
    "CommissionSettingsUpdate",
    "CommissionSettingsResponse",
    "CommissionSettingsUpdateResponse",
    "FeeBreakdown",
    "FeeBreakdownResponse",
    # Film reviews
    "StructuredReviewSubmission",
    "FilmReviewAcceptResponse",
    "FilmReviewDeclineResponse",
    "FilmReviewCompleteResponse",
    "FilmReviewDetail",
    # Infrastructure
    "HealthResponse",
    "WebhookResponse",
]
