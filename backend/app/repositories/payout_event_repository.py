"""Repository for payout audit events."""

from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.models.payout_event import PayoutEvent

from .base_repository import BaseRepository


class PayoutEventRepository(BaseRepository[PayoutEvent]):
    def __init__(self, db: Session) -> None:
        super().__init__(db, PayoutEvent)

    def record(
        self,
        *,
        booking_id: str,
        coach_id: str,
        event_type: str,
        amount_cents: int,
        status: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> PayoutEvent:
        return self.create(
            booking_id=booking_id,
            coach_id=coach_id,
            event_type=event_type,
            amount_cents=amount_cents,
            status=status,
            event_metadata=metadata,
        )

    def get_for_booking(self, booking_id: str, event_type: str) -> Optional[PayoutEvent]:
        return self.find_one_by(booking_id=booking_id, event_type=event_type)


__all__ = ["PayoutEventRepository"]
