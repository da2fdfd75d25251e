# backend/app/models/booking.py
"""
Booking model for the CoachLane platform.

A booking is a confirmed, paid engagement. Live lessons are created only when
a booking request is accepted and its payment captured. Film reviews are
created at checkout (payment already captured) and then move through their
own ``review_status`` lifecycle.

``amount_paid_cents`` is written once at creation and never recomputed.
"""

from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from ..core.timezone_utils import ensure_utc
from ..core.ulid_helper import generate_ulid
from ..database import Base

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PAID = "paid"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BookingType(str, Enum):
    LIVE_LESSON = "live_lesson"
    FILM_REVIEW = "film_review"


class ReviewStatus(str, Enum):
    """Film review lifecycle."""

    PENDING_ACCEPTANCE = "pending_acceptance"
    ACCEPTED = "accepted"
    COMPLETED = "completed"
    DECLINED = "declined"


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)

    # Core relationships
    listing_id = Column(String(26), ForeignKey("listings.id"), nullable=False)
    coach_id = Column(String(26), ForeignKey("profiles.id"), nullable=False)
    athlete_id = Column(String(26), ForeignKey("profiles.id"), nullable=True)
    customer_email = Column(String(255), nullable=False)
    conversation_id = Column(String(26), ForeignKey("conversations.id"), nullable=True)
    # Set for live lessons created from a request; unique so a request yields one booking
    booking_request_id = Column(
        String(26), ForeignKey("booking_requests.id"), nullable=True, unique=True
    )

    # Money (integer cents)
    amount_paid_cents = Column(Integer, nullable=False)
    platform_fee_cents = Column(Integer, nullable=False, default=0)
    payment_intent_id = Column(String(255), nullable=True)

    status = Column(String(20), nullable=False, default=BookingStatus.PAID.value)
    booking_type = Column(String(20), nullable=False, default=BookingType.LIVE_LESSON.value)

    # Schedule (live lessons)
    starts_at = Column(DateTime(timezone=True), nullable=True)
    ends_at = Column(DateTime(timezone=True), nullable=True)
    timezone = Column(String(64), nullable=True)

    # Video meeting (optional, provisioning may fail)
    meeting_id = Column(String(64), nullable=True)
    meeting_join_url = Column(Text, nullable=True)
    meeting_host_url = Column(Text, nullable=True)

    # Film review
    film_url = Column(Text, nullable=True)
    athlete_notes = Column(Text, nullable=True)
    review_status = Column(String(30), nullable=True)
    review_content = Column(JSON, nullable=True)
    review_document_url = Column(Text, nullable=True)
    review_completed_at = Column(DateTime(timezone=True), nullable=True)
    coach_accepted_at = Column(DateTime(timezone=True), nullable=True)
    coach_declined_at = Column(DateTime(timezone=True), nullable=True)
    deadline_at = Column(DateTime(timezone=True), nullable=True)
    turnaround_hours = Column(Integer, nullable=True)
    review_submitted_late = Column(Boolean, nullable=False, default=False)
    review_hours_late = Column(Integer, nullable=True)
    refund_issued = Column(Boolean, nullable=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    listing = relationship("Listing")
    coach = relationship("Profile", foreign_keys=[coach_id])

    __table_args__ = (
        CheckConstraint("amount_paid_cents >= 0", name="ck_bookings_amount_nonnegative"),
        CheckConstraint(
            "status IN ('paid', 'completed', 'cancelled')", name="ck_bookings_status"
        ),
        CheckConstraint(
            "booking_type IN ('live_lesson', 'film_review')", name="ck_bookings_type"
        ),
        Index("idx_bookings_coach_type", "coach_id", "booking_type"),
    )

    @property
    def is_film_review(self) -> bool:
        return self.booking_type == BookingType.FILM_REVIEW.value

    @property
    def deadline_utc(self) -> Optional[datetime]:
        return ensure_utc(self.deadline_at) if self.deadline_at else None

    def __repr__(self) -> str:
        return f"<Booking {self.id} {self.booking_type} {self.status}>"
