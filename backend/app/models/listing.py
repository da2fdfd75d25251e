# backend/app/models/listing.py
"""Coach listings: a bookable live lesson or a film review offer."""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ..core.constants import BOOKING_TYPE_LIVE_LESSON
from ..core.ulid_helper import generate_ulid
from ..database import Base


class Listing(Base):
    __tablename__ = "listings"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    coach_id = Column(String(26), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=False)
    price_cents = Column(Integer, nullable=False)
    duration_minutes = Column(Integer, nullable=True)
    listing_type = Column(String(20), nullable=False, default=BOOKING_TYPE_LIVE_LESSON)
    # Only used by film review listings
    turnaround_hours = Column(Integer, nullable=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    coach = relationship("Profile", foreign_keys=[coach_id])

    __table_args__ = (
        CheckConstraint("price_cents > 0", name="ck_listings_price_positive"),
        CheckConstraint(
            "listing_type IN ('live_lesson', 'film_review')", name="ck_listings_type"
        ),
    )

    def __repr__(self) -> str:
        return f"<Listing {self.id} {self.listing_type} {self.price_cents}c>"
