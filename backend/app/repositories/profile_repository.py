# backend/app/repositories/profile_repository.py
"""Lookups for profiles, coaches and listings used by the booking workflow."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models.listing import Listing
from ..models.profile import Coach, Profile
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ProfileRepository(BaseRepository[Profile]):
    def __init__(self, db: Session):
        super().__init__(db, Profile)

    def get_coach(self, profile_id: str) -> Optional[Coach]:
        return self.db.get(Coach, profile_id)

    def get_coach_payout_account(self, profile_id: str) -> Optional[str]:
        """Stripe Connect account id for the coach, or None when payouts are not set up."""
        coach = self.get_coach(profile_id)
        if coach is None or not coach.stripe_account_id:
            return None
        return str(coach.stripe_account_id)


class ListingRepository(BaseRepository[Listing]):
    def __init__(self, db: Session):
        super().__init__(db, Listing)
