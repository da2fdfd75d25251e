# backend/app/repositories/base_repository.py
"""
Base Repository Pattern for CoachLane

Provides the foundation for all repository classes with:
- Common create and lookup operations
- Type safety with generics
- Transaction support (managed by services)

Repositories never commit; the service layer owns transaction boundaries.
"""

import logging
from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException

# Type variable for generic model support
T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Concrete base repository with common data access patterns.

    Attributes:
        db: SQLAlchemy session
        model: SQLAlchemy model class
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    def get_by_id(self, id: str) -> Optional[T]:
        """Retrieve an entity by its primary key."""
        try:
            return self.db.get(self.model, id)
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting {self.model.__name__} by id {id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve {self.model.__name__}: {str(e)}")

    def create(self, **kwargs: Any) -> T:
        """
        Create a new entity.

        Note: Does NOT commit - transaction management is handled by service layer.
        """
        try:
            entity = self.model(**kwargs)
            self.db.add(entity)
            self.db.flush()  # Get ID without committing
            return entity
        except IntegrityError as exc:
            self.logger.error("Integrity error creating %s: %s", self.model.__name__, exc)
            self.db.rollback()
            raise RepositoryException(f"Integrity constraint violated: {exc}") from exc
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating {self.model.__name__}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to create {self.model.__name__}: {str(e)}")

    def find_one_by(self, **kwargs: Any) -> Optional[T]:
        """Find a single entity by exact-match criteria."""
        try:
            return self.db.query(self.model).filter_by(**kwargs).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding one by criteria: {str(e)}")
            raise RepositoryException(f"Failed to find record: {str(e)}")

    def _compare_and_set_status(
        self,
        id: str,
        expected: str,
        new: str,
        *,
        status_column: str = "status",
        **extra: Any,
    ) -> bool:
        """
        Conditionally update ``status_column`` from ``expected`` to ``new``.

        Runs a single ``UPDATE ... WHERE id = :id AND <status> = :expected``
        so two racing callers cannot both win. Returns True when this caller
        flipped the row. Extra keyword values are written in the same statement.
        """
        column = getattr(self.model, status_column)
        values = {status_column: new, **extra}
        try:
            updated = (
                self.db.query(self.model)
                .filter(self.model.id == id, column == expected)
                .update(values, synchronize_session="fetch")
            )
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error transitioning {self.model.__name__} {id} {expected}->{new}: {str(e)}"
            )
            raise RepositoryException(f"Failed to update {self.model.__name__} status: {str(e)}")
        return bool(updated)
