"""Key/value runtime settings editable by admins (commission rates live here)."""

from sqlalchemy import JSON, Column, DateTime, Text
from sqlalchemy.sql import func

from ..database import Base

COMMISSION_CONFIG_KEY = "commission"


class PlatformConfig(Base):
    __tablename__ = "platform_config"

    key = Column(Text, primary_key=True, nullable=False)
    value_json = Column(JSON, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<PlatformConfig {self.key}>"
