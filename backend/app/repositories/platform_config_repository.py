"""Repository for platform configuration records."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import RepositoryException
from app.models.platform_config import PlatformConfig

from .base_repository import BaseRepository


class PlatformConfigRepository(BaseRepository[PlatformConfig]):
    """Key/value access for admin-editable settings."""

    def __init__(self, db: Session) -> None:
        super().__init__(db, PlatformConfig)

    def get_by_key(self, key: str) -> Optional[PlatformConfig]:
        return self.get_by_id(key)

    def upsert(self, *, key: str, value: Mapping[str, Any], updated_at: datetime) -> PlatformConfig:
        try:
            record = self.get_by_key(key)
            if record is None:
                record = PlatformConfig(key=key, value_json=dict(value), updated_at=updated_at)
                self.db.add(record)
            else:
                record.value_json = dict(value)
                record.updated_at = updated_at
            self.db.flush()
            return record
        except SQLAlchemyError as e:
            self.logger.error(f"Error saving platform config {key}: {str(e)}")
            raise RepositoryException(f"Failed to save platform config: {str(e)}")


__all__ = ["PlatformConfigRepository"]
