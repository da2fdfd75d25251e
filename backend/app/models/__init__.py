"""
Database models for the CoachLane platform.

Importing this package registers every table on ``Base.metadata``.
"""

from .booking import Booking, BookingStatus, BookingType, ReviewStatus
from .booking_request import BookingRequest, BookingRequestStatus
from .conversation import Conversation
from .listing import Listing
from .message import Message
from .payout_event import PayoutEvent
from .platform_config import COMMISSION_CONFIG_KEY, PlatformConfig
from .profile import Coach, Profile, ProfileRole

__all__ = [
    "Booking",
    "BookingRequest",
    "BookingRequestStatus",
    "BookingStatus",
    "BookingType",
    "COMMISSION_CONFIG_KEY",
    "Coach",
    "Conversation",
    "Listing",
    "Message",
    "PayoutEvent",
    "PlatformConfig",
    "Profile",
    "ProfileRole",
    "ReviewStatus",
]
