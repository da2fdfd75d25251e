# backend/app/repositories/booking_repository.py
"""
Booking Repository for CoachLane

Bookings are created by the request workflow (live lessons) or at checkout
(film reviews). Film review state changes go through the compare-and-swap
helper on ``review_status``.
"""

import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def get_with_listing(self, booking_id: str) -> Optional[Booking]:
        try:
            return (
                self.db.query(Booking)
                .options(joinedload(Booking.listing))
                .filter(Booking.id == booking_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to load booking: {str(e)}")

    def get_by_request_id(self, request_id: str) -> Optional[Booking]:
        return self.find_one_by(booking_request_id=request_id)

    def try_transition_review(
        self, booking_id: str, expected_status: str, new_status: str, **values: Any
    ) -> bool:
        """Move ``review_status`` forward if it still equals ``expected_status``."""
        return self._compare_and_set_status(
            booking_id, expected_status, new_status, status_column="review_status", **values
        )
