# backend/app/models/message.py
"""
Message model for the conversation thread.

System messages have no sender and carry a ``kind`` plus optional structured
metadata (for example the confirmed schedule and meeting links).
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.types import JSON as SAJSON

from ..core.constants import MESSAGE_KIND_TEXT
from ..core.ulid_helper import generate_ulid
from ..database import Base


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    conversation_id = Column(
        String(26), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )
    # NULL for system messages
    sender_id = Column(String(26), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    body = Column(Text, nullable=False)
    kind = Column(String(40), nullable=False, default=MESSAGE_KIND_TEXT)
    message_metadata = Column("metadata", SAJSON, nullable=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    conversation = relationship("Conversation", back_populates="messages")

    __table_args__ = (Index("idx_messages_conversation_created", "conversation_id", "created_at"),)

    @property
    def is_system(self) -> bool:
        return self.sender_id is None
