# backend/app/api/dependencies/auth.py
"""
Authentication and authorization dependencies.

The bearer token names a profile; the profile row supplies the role. Role
checks return 403, missing or unknown callers 401.
"""

import logging

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...auth import get_current_subject
from ...principal import Principal
from ...repositories.factory import RepositoryFactory
from .database import get_db

logger = logging.getLogger(__name__)


def get_current_principal(
    subject: str = Depends(get_current_subject),
    db: Session = Depends(get_db),
) -> Principal:
    """Resolve the token subject to a Principal."""
    profile = RepositoryFactory.create_profile_repository(db).get_by_id(subject)
    if profile is None:
        logger.warning(f"Token subject {subject} has no profile")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Principal(id=profile.id, role=profile.role, email=profile.email)


def require_coach(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_coach:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only coaches can perform this action",
        )
    return principal


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return principal
