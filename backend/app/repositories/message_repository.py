# backend/app/repositories/message_repository.py
"""Repository for conversation messages."""

from datetime import datetime, timezone
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.conversation import Conversation
from ..models.message import Message
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class MessageRepository(BaseRepository[Message]):
    def __init__(self, db: Session):
        super().__init__(db, Message)

    def create_system_message(
        self,
        conversation_id: str,
        body: str,
        kind: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Message:
        """Insert a sender-less message and bump the conversation's activity time."""
        message = self.create(
            conversation_id=conversation_id,
            sender_id=None,
            body=body,
            kind=kind,
            message_metadata=metadata,
        )
        conversation = self.db.get(Conversation, conversation_id)
        if conversation is not None:
            conversation.last_message_at = datetime.now(timezone.utc)
            self.db.flush()
        return message

    def find_by_conversation(self, conversation_id: str) -> List[Message]:
        try:
            return (
                self.db.query(Message)
                .filter(Message.conversation_id == conversation_id)
                .order_by(Message.created_at.asc(), Message.id.asc())
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing messages for {conversation_id}: {str(e)}")
            raise RepositoryException(f"Failed to list messages: {str(e)}")
