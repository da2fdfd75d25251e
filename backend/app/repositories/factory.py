# backend/app/repositories/factory.py
"""
Repository Factory for CoachLane

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .booking_request_repository import BookingRequestRepository
    from .message_repository import MessageRepository
    from .payout_event_repository import PayoutEventRepository
    from .platform_config_repository import PlatformConfigRepository
    from .profile_repository import ListingRepository, ProfileRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Services ask the factory rather than constructing repositories directly so
    tests can patch a single seam.
    """

    @staticmethod
    def create_booking_request_repository(db: Session) -> "BookingRequestRepository":
        from .booking_request_repository import BookingRequestRepository

        return BookingRequestRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_message_repository(db: Session) -> "MessageRepository":
        from .message_repository import MessageRepository

        return MessageRepository(db)

    @staticmethod
    def create_payout_event_repository(db: Session) -> "PayoutEventRepository":
        from .payout_event_repository import PayoutEventRepository

        return PayoutEventRepository(db)

    @staticmethod
    def create_platform_config_repository(db: Session) -> "PlatformConfigRepository":
        from .platform_config_repository import PlatformConfigRepository

        return PlatformConfigRepository(db)

    @staticmethod
    def create_profile_repository(db: Session) -> "ProfileRepository":
        from .profile_repository import ProfileRepository

        return ProfileRepository(db)

    @staticmethod
    def create_listing_repository(db: Session) -> "ListingRepository":
        from .profile_repository import ListingRepository

        return ListingRepository(db)
