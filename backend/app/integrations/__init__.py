"""External service integrations for the CoachLane platform."""

from .zoom_client import FakeZoomClient, MeetingDetails, ZoomClient, ZoomError

__all__ = ["FakeZoomClient", "MeetingDetails", "ZoomClient", "ZoomError"]
