# backend/app/repositories/booking_request_repository.py
"""
Booking Request Repository for CoachLane

Data access for booking requests, including the compare-and-swap status
transition the workflow relies on to stop two coaches' clicks (or a click and
the sweeper) from both winning.
"""

from datetime import datetime
import logging
from typing import List, Optional, Tuple

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.constants import SWEEP_BATCH_LIMIT
from ..core.exceptions import RepositoryException
from ..models.booking_request import BookingRequest, BookingRequestStatus
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRequestRepository(BaseRepository[BookingRequest]):
    def __init__(self, db: Session):
        super().__init__(db, BookingRequest)

    def get_with_details(self, request_id: str) -> Optional[BookingRequest]:
        """Load a request with its listing, coach and athlete."""
        try:
            return (
                self.db.query(BookingRequest)
                .options(
                    joinedload(BookingRequest.listing),
                    joinedload(BookingRequest.coach),
                    joinedload(BookingRequest.athlete),
                )
                .filter(BookingRequest.id == request_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading booking request {request_id}: {str(e)}")
            raise RepositoryException(f"Failed to load booking request: {str(e)}")

    def try_transition(self, request_id: str, expected_status: str, new_status: str) -> bool:
        """Flip status only if it still equals ``expected_status``."""
        return self._compare_and_set_status(request_id, expected_status, new_status)

    def bump_capture_attempt(self, request_id: str) -> None:
        """Increment the capture attempt counter of a still-pending request in place."""
        try:
            self.db.query(BookingRequest).filter(
                BookingRequest.id == request_id,
                BookingRequest.status == BookingRequestStatus.PENDING.value,
            ).update(
                {BookingRequest.capture_attempt: BookingRequest.capture_attempt + 1},
                synchronize_session="fetch",
            )
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error bumping capture attempt for {request_id}: {str(e)}")
            raise RepositoryException(f"Failed to update booking request: {str(e)}")

    def find_stale_pending(
        self,
        created_before: datetime,
        limit: int = SWEEP_BATCH_LIMIT,
        after: Optional[Tuple[datetime, str]] = None,
    ) -> List[BookingRequest]:
        """
        Pending requests created before the cutoff, oldest first.

        ``after`` is the (created_at, id) of the last row of the previous
        page; rows at or before it are skipped.
        """
        try:
            query = (
                self.db.query(BookingRequest)
                .options(joinedload(BookingRequest.listing), joinedload(BookingRequest.athlete))
                .filter(
                    BookingRequest.status == BookingRequestStatus.PENDING.value,
                    BookingRequest.created_at < created_before,
                )
            )
            if after is not None:
                last_created, last_id = after
                query = query.filter(
                    or_(
                        BookingRequest.created_at > last_created,
                        and_(BookingRequest.created_at == last_created, BookingRequest.id > last_id),
                    )
                )
            return (
                query.order_by(BookingRequest.created_at.asc(), BookingRequest.id.asc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding stale booking requests: {str(e)}")
            raise RepositoryException(f"Failed to find stale booking requests: {str(e)}")
