"""Schemas for the film review workflow.

``StructuredReviewSubmission`` is the only accepted review payload. Unknown
fields are rejected; content minimums are counted after trimming whitespace.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Literal, Optional
from urllib.parse import urlparse

from pydantic import ValidationInfo, field_validator

from ..core.constants import (
    REVIEW_MIN_AREAS_FOR_IMPROVEMENT,
    REVIEW_MIN_OVERALL_ASSESSMENT,
    REVIEW_MIN_RECOMMENDED_DRILLS,
    REVIEW_MIN_STRENGTHS,
    SUPPLEMENTAL_DOC_ALLOWED_HOSTS,
)
from ._strict_base import StrictModel, StrictRequestModel

_MINIMUMS = {
    "overall_assessment": REVIEW_MIN_OVERALL_ASSESSMENT,
    "strengths": REVIEW_MIN_STRENGTHS,
    "areas_for_improvement": REVIEW_MIN_AREAS_FOR_IMPROVEMENT,
    "recommended_drills": REVIEW_MIN_RECOMMENDED_DRILLS,
}


def is_allowed_supplemental_url(url: str) -> bool:
    """Allow-listed document/video hosts (any subdomain), or an HTTPS link to a PDF."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False
    if parsed.scheme == "https" and parsed.path.lower().endswith(".pdf"):
        return True
    host = parsed.hostname.lower()
    return any(host == allowed or host.endswith(f".{allowed}") for allowed in SUPPLEMENTAL_DOC_ALLOWED_HOSTS)


class StructuredReviewSubmission(StrictRequestModel):
    overall_assessment: str
    strengths: str
    areas_for_improvement: str
    recommended_drills: str
    key_timestamps: Optional[str] = None
    supplemental_url: Optional[str] = None

    @field_validator(
        "overall_assessment", "strengths", "areas_for_improvement", "recommended_drills"
    )
    @classmethod
    def _meets_minimum(cls, value: str, info: ValidationInfo) -> str:
        value = value.strip()
        minimum = _MINIMUMS[info.field_name]
        if len(value) < minimum:
            raise ValueError(
                f"{info.field_name} must be at least {minimum} characters (got {len(value)})"
            )
        return value

    @field_validator("key_timestamps")
    @classmethod
    def _blank_timestamps_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @field_validator("supplemental_url")
    @classmethod
    def _allowed_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        value = value.strip()
        if not is_allowed_supplemental_url(value):
            raise ValueError(
                "Supplemental document must be from Google Docs, Google Drive, Dropbox, "
                "Notion, Loom, YouTube, Vimeo, or be an HTTPS PDF link"
            )
        return value


class FilmReviewAcceptResponse(StrictModel):
    booking_id: str
    review_status: Literal["accepted"] = "accepted"
    film_url: Optional[str] = None
    athlete_notes: Optional[str] = None
    deadline_at: datetime
    turnaround_hours: int


class FilmReviewDeclineResponse(StrictModel):
    booking_id: str
    review_status: Literal["declined"] = "declined"
    refund_issued: bool
    message: str


class FilmReviewCompleteResponse(StrictModel):
    booking_id: str
    review_status: Literal["completed"] = "completed"
    review_completed_at: datetime
    review_submitted_late: bool
    review_hours_late: Optional[int] = None


class FilmReviewDetail(StrictModel):
    """Coach's view of a film review. ``film_url`` is withheld until accepted."""

    booking_id: str
    listing_title: Optional[str] = None
    review_status: str
    amount_paid_cents: int
    turnaround_hours: int
    film_url: Optional[str] = None
    athlete_notes: Optional[str] = None
    coach_accepted_at: Optional[datetime] = None
    deadline_at: Optional[datetime] = None
    is_overdue: bool = False
    hours_remaining: Optional[float] = None
    review_content: Optional[Dict[str, Any]] = None
    review_completed_at: Optional[datetime] = None
    review_submitted_late: bool = False
    review_hours_late: Optional[int] = None
