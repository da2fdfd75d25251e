"""Create every table on the configured database. Run with ``python -m app.init_db``."""

import logging

from app import models  # noqa: F401  registers tables on Base.metadata
from app.database import Base, engine

logger = logging.getLogger(__name__)


def create_tables() -> None:
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Tables created successfully")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_tables()
