"""
Payout audit events.

Append-only rows recording money owed to a coach. One row per
(booking, event type); a duplicate insert is rejected by the unique constraint.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.ulid_helper import generate_ulid
from app.database import Base


class PayoutEvent(Base):
    """A coach payout owed for a delivered booking."""

    __tablename__ = "payout_events"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    booking_id: Mapped[str] = mapped_column(String(26), ForeignKey("bookings.id"), nullable=False)
    coach_id: Mapped[str] = mapped_column(String(26), ForeignKey("profiles.id"), nullable=False)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    event_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column("metadata", JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("booking_id", "event_type", name="uq_payout_events_booking_event"),
    )

    def __repr__(self) -> str:
        return f"<PayoutEvent(booking_id={self.booking_id}, type={self.event_type}, amount={self.amount_cents})>"
