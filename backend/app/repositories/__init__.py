# backend/app/repositories/__init__.py
"""
Repository layer for CoachLane.

Usage:
    from app.repositories import RepositoryFactory

    requests = RepositoryFactory.create_booking_request_repository(db)
    if requests.try_transition(request_id, "pending", "accepted"):
        ...
"""

from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .booking_request_repository import BookingRequestRepository
from .factory import RepositoryFactory
from .message_repository import MessageRepository
from .payout_event_repository import PayoutEventRepository
from .platform_config_repository import PlatformConfigRepository
from .profile_repository import ListingRepository, ProfileRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "BookingRequestRepository",
    "ListingRepository",
    "MessageRepository",
    "PayoutEventRepository",
    "PlatformConfigRepository",
    "ProfileRepository",
    "RepositoryFactory",
]
