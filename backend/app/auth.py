# backend/app/auth.py
"""
Bearer token handling.

Access tokens are HS256 JWTs issued by the identity provider; ``sub`` is the
caller's profile id. This module only verifies and decodes them.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, Optional, cast

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from jwt import PyJWTError

from .core.config import settings

logger = logging.getLogger(__name__)

bearer_scheme_optional = HTTPBearer(auto_error=False)

DEFAULT_TOKEN_LIFETIME = timedelta(hours=1)


def _secret_value(secret_obj: Any) -> str:
    getter = getattr(secret_obj, "get_secret_value", None)
    if callable(getter):
        return cast(str, getter())
    return cast(str, secret_obj)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decode and verify a JWT access token."""
    payload_raw = jwt.decode(
        token,
        _secret_value(settings.secret_key),
        algorithms=[settings.algorithm],
        options={"verify_aud": False, "require": ["sub", "exp"]},
    )
    return cast(Dict[str, Any], payload_raw)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Used by internal tooling and tests; production tokens come from the
    identity provider.
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or DEFAULT_TOKEN_LIFETIME)
    to_encode.update({"exp": expire})
    return cast(
        str,
        jwt.encode(to_encode, _secret_value(settings.secret_key), algorithm=settings.algorithm),
    )


def get_current_subject(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme_optional),
) -> str:
    """
    Dependency returning the authenticated profile id from the bearer token.

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = decode_access_token(credentials.credentials)
    except PyJWTError as e:
        logger.warning(f"JWT validation error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        logger.warning("Token payload missing 'sub' field")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return subject
