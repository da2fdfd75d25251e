# backend/app/models/booking_request.py
"""
Booking request model.

A request is a proposed, unpaid live lesson waiting on the coach. Status only
moves pending -> accepted | declined | expired; terminal rows are never
updated again and never deleted.
"""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from ..core.ulid_helper import generate_ulid
from ..database import Base


class BookingRequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class BookingRequest(Base):
    __tablename__ = "booking_requests"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    listing_id = Column(String(26), ForeignKey("listings.id"), nullable=False)
    coach_id = Column(String(26), ForeignKey("profiles.id"), nullable=False)
    athlete_id = Column(String(26), ForeignKey("profiles.id"), nullable=False)
    proposed_start = Column(DateTime(timezone=True), nullable=False)
    proposed_end = Column(DateTime(timezone=True), nullable=False)
    timezone = Column(String(64), nullable=False, default="UTC")
    status = Column(String(20), nullable=False, default=BookingRequestStatus.PENDING.value)
    conversation_id = Column(String(26), ForeignKey("conversations.id"), nullable=True)
    # Opaque saved payment method token (pm_...)
    payment_method_id = Column(String(255), nullable=True)
    # Intent awaiting athlete authentication; the webhook finalizes only this one
    pending_payment_intent_id = Column(String(255), nullable=True)
    # Bumped after each declined capture; part of the Stripe idempotency key
    capture_attempt = Column(Integer, nullable=False, default=0, server_default="0")
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
    athlete = relationship("Profile", foreign_keys=[athlete_id])

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'accepted', 'declined', 'expired')",
            name="ck_booking_requests_status",
        ),
        CheckConstraint("proposed_end > proposed_start", name="ck_booking_requests_window"),
        Index("idx_booking_requests_status_created", "status", "created_at"),
        Index("idx_booking_requests_coach", "coach_id"),
    )

    @property
    def is_pending(self) -> bool:
        return self.status == BookingRequestStatus.PENDING.value

    def __repr__(self) -> str:
        return f"<BookingRequest {self.id} {self.status}>"
