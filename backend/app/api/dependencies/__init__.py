"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import get_current_principal, require_admin, require_coach
from .database import get_db
from .services import (
    get_booking_request_service,
    get_commission_service,
    get_expiration_service,
    get_film_review_service,
    get_stripe_service,
)

__all__ = [
    # Auth
    "get_current_principal",
    "require_coach",
    "require_admin",
    # Database
    "get_db",
    # Services
    "get_booking_request_service",
    "get_commission_service",
    "get_expiration_service",
    "get_film_review_service",
    "get_stripe_service",
]
