# backend/app/models/conversation.py
"""
Conversation model for athlete/coach messaging.

Booking requests point at a conversation; the booking workflow posts
system messages into it so both sides see payment and schedule updates.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship

from ..core.ulid_helper import generate_ulid
from ..database import Base


class Conversation(Base):
    """
    A single thread between one athlete and one coach.

    Attributes:
        id: ULID primary key
        athlete_id: Athlete profile
        coach_id: Coach profile
        last_message_at: When the most recent message was posted
    """

    __tablename__ = "conversations"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    athlete_id = Column(String(26), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    coach_id = Column(String(26), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    last_message_at = Column(DateTime(timezone=True), nullable=True)

    messages = relationship(
        "Message",
        back_populates="conversation",
        order_by="Message.created_at",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_conversations_athlete", "athlete_id"),
        Index("idx_conversations_coach", "coach_id"),
    )

    def __repr__(self) -> str:
        return f"<Conversation {self.id}>"
