"""MeetingService: provisions the video meeting for an accepted lesson.

Provisioning never blocks a booking. Any misconfiguration or provider failure
degrades to "no meeting", is logged, and counted.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Optional, Union

from ..core.config import Settings, settings as default_settings
from ..core.timezone_utils import ensure_utc
from ..integrations.zoom_client import FakeZoomClient, MeetingDetails, ZoomClient, ZoomError
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

MeetingClient = Union[ZoomClient, FakeZoomClient]


def build_zoom_client(app_settings: Settings = default_settings) -> Optional[MeetingClient]:
    """Return the Zoom client for this environment, or None when meetings are off."""
    if not app_settings.zoom_enabled:
        return None
    if app_settings.zoom_configured:
        secret = app_settings.zoom_client_secret
        return ZoomClient(
            account_id=str(app_settings.zoom_account_id),
            client_id=str(app_settings.zoom_client_id),
            client_secret=secret.get_secret_value() if secret else "",
            base_url=app_settings.zoom_api_base_url,
            token_url=app_settings.zoom_token_url,
            default_timezone=app_settings.zoom_default_timezone,
            timeout=app_settings.zoom_timeout_seconds,
        )
    if app_settings.is_production:
        logger.error("ZOOM_ENABLED is set but Zoom credentials are missing; meetings disabled")
        return None
    logger.warning("Zoom credentials not configured; using in-memory fake meetings")
    return FakeZoomClient()


def build_meeting_topic(listing_title: str, athlete_name: Optional[str]) -> str:
    return f"{listing_title} - {athlete_name or 'Athlete'}"


class MeetingService:
    """Creates meetings through the configured client, swallowing every failure."""

    def __init__(
        self,
        client: Optional[MeetingClient],
        *,
        default_duration_minutes: int = default_settings.default_session_minutes,
    ) -> None:
        self.client = client
        self.default_duration_minutes = default_duration_minutes

    def provision(
        self,
        *,
        listing_title: str,
        athlete_name: Optional[str],
        start_time: datetime,
        duration_minutes: Optional[int],
        host_email: Optional[str],
        booking_request_id: str,
    ) -> Optional[MeetingDetails]:
        if self.client is None:
            prometheus_metrics.inc_meeting_provision("skipped")
            logger.info("Video meetings disabled; booking request %s has no meeting", booking_request_id)
            return None

        try:
            meeting = self.client.create_meeting(
                topic=build_meeting_topic(listing_title, athlete_name),
                start_time=ensure_utc(start_time),
                duration_minutes=duration_minutes or self.default_duration_minutes,
                host_email=host_email,
            )
        except ZoomError as exc:
            prometheus_metrics.inc_meeting_provision("error")
            logger.warning(
                "Meeting creation failed for booking request %s: %s",
                booking_request_id,
                exc.message,
                extra={"status_code": exc.status_code},
            )
            return None
        except Exception as exc:
            prometheus_metrics.inc_meeting_provision("error")
            logger.warning(
                "Unexpected meeting provisioning error for booking request %s: %s",
                booking_request_id,
                exc,
                exc_info=True,
            )
            return None

        prometheus_metrics.inc_meeting_provision("created")
        logger.info(
            "Meeting %s created for booking request %s", meeting.meeting_id, booking_request_id
        )
        return meeting
