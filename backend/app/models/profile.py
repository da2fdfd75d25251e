# backend/app/models/profile.py
"""
Profile and coach models.

A profile is any signed-in person (athlete, coach or admin). Coaches carry an
extra row holding their Stripe Connect destination account.
"""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from ..core.ulid_helper import generate_ulid
from ..database import Base


class ProfileRole(str, Enum):
    ATHLETE = "athlete"
    COACH = "coach"
    ADMIN = "admin"


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default=ProfileRole.ATHLETE.value)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    coach = relationship("Coach", back_populates="profile", uselist=False)

    @property
    def display_name(self) -> str:
        return self.full_name or self.email.split("@")[0]

    def __repr__(self) -> str:
        return f"<Profile {self.id} role={self.role}>"


class Coach(Base):
    """Coach-specific data; ``stripe_account_id`` is the payout destination."""

    __tablename__ = "coaches"

    profile_id = Column(
        String(26), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    stripe_account_id = Column(String(255), nullable=True)

    profile = relationship("Profile", back_populates="coach")

    def __repr__(self) -> str:
        return f"<Coach {self.profile_id} payouts={'yes' if self.stripe_account_id else 'no'}>"
