# backend/app/services/notification_service.py
"""
Notification Service for CoachLane

The booking workflows tell participants what happened in two ways: a system
message in the request's conversation and a transactional email. Both are
best-effort. A failure is logged and counted but never reaches the caller,
whose primary transition has already been committed.
"""

import logging
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import MESSAGE_KIND_SYSTEM
from ..models.message import Message
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .best_effort import run_best_effort
from .email import EmailService

logger = logging.getLogger(__name__)


class NotificationService(BaseService):
    """Posts conversation system messages and sends athlete emails."""

    def __init__(
        self,
        db: Session,
        email_service_factory: Optional[Callable[[], EmailService]] = None,
    ):
        super().__init__(db)
        self.message_repository = RepositoryFactory.create_message_repository(db)
        self._email_service_factory = email_service_factory or (lambda: EmailService(db))

    def post_system_message(
        self,
        conversation_id: Optional[str],
        body: str,
        *,
        kind: str = MESSAGE_KIND_SYSTEM,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[Message]:
        """
        Insert a system message and commit it on its own.

        Returns the message, or None when there is no conversation or the
        insert failed.
        """
        if not conversation_id:
            self.logger.info(f"No conversation for system message ({kind}); skipping")
            return None

        def _post() -> Message:
            try:
                message = self.message_repository.create_system_message(
                    conversation_id, body, kind, metadata
                )
                self.db.commit()
                return message
            except Exception:
                self.db.rollback()
                raise

        return run_best_effort(f"system_message.{kind}", _post)

    def send_email(self, label: str, send: Callable[[EmailService], Any]) -> bool:
        """
        Build an EmailService and run ``send`` with it under the email timeout.

        ``send`` runs on a worker thread, so it must only use values captured
        before the call, never the database session.
        """
        result = run_best_effort(
            f"email.{label}",
            lambda: send(self._email_service_factory()),
            timeout=settings.email_timeout_seconds,
        )
        return result is not None
