"""Zoom Video Integration Client.

Uses a server-to-server OAuth app (``grant_type=account_credentials``) to
obtain a short-lived access token, then schedules meetings through the Zoom
REST API. Each meeting has separate attendee (join) and organizer (start) URLs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
import time
from typing import Any, cast
import uuid

import httpx
from pydantic import SecretStr

logger = logging.getLogger(__name__)

# Scheduled meeting, joinable before the host, muted on entry.
MEETING_DEFAULT_SETTINGS: dict[str, Any] = {
    "host_video": True,
    "participant_video": True,
    "join_before_host": True,
    "mute_upon_entry": True,
    "waiting_room": False,
    "auto_recording": "none",
}
SCHEDULED_MEETING_TYPE = 2


class ZoomError(RuntimeError):
    """Raised when the Zoom API responds with an error or cannot be reached."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        *,
        details: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details


@dataclass(frozen=True)
class MeetingDetails:
    meeting_id: str
    join_url: str
    host_url: str


class ZoomClient:
    """HTTP client for the Zoom REST API."""

    def __init__(
        self,
        *,
        account_id: str,
        client_id: str,
        client_secret: str | SecretStr,
        base_url: str = "https://api.zoom.us/v2",
        token_url: str = "https://zoom.us/oauth/token",
        default_timezone: str = "UTC",
        timeout: float = 10.0,
    ) -> None:
        self._account_id = account_id
        self._client_id = client_id
        self._client_secret = (
            client_secret.get_secret_value()
            if isinstance(client_secret, SecretStr)
            else client_secret
        )
        self._base_url = base_url.rstrip("/")
        self._token_url = token_url
        self._default_timezone = default_timezone
        self._timeout = timeout
        self._access_token: str | None = None
        self._token_refresh_at: float = 0.0

    def _fetch_access_token(self) -> tuple[str, int]:
        try:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.post(
                    self._token_url,
                    auth=(self._client_id, self._client_secret),
                    data={"grant_type": "account_credentials", "account_id": self._account_id},
                )
        except httpx.TransportError as exc:
            logger.error("Zoom OAuth unreachable: %s", exc)
            raise ZoomError(f"Zoom OAuth unreachable: {exc}") from exc

        if response.status_code >= 400:
            body = _safe_json(response)
            message = body.get("error_description") or body.get("error") or response.text[:200]
            logger.error("Zoom OAuth error %s: %s", response.status_code, message)
            raise ZoomError(
                f"Failed to get Zoom access token: {message}",
                status_code=response.status_code,
                details=body,
            )

        payload = _safe_json(response)
        token = payload.get("access_token")
        if not token:
            raise ZoomError("Zoom OAuth response missing access_token", details=payload)
        return str(token), int(payload.get("expires_in") or 3600)

    def _get_access_token(self) -> str:
        """Return a cached access token, refreshing five minutes before expiry."""
        now = time.monotonic()
        if self._access_token is None or now >= self._token_refresh_at:
            token, expires_in = self._fetch_access_token()
            self._access_token = token
            self._token_refresh_at = now + max(expires_in - 300, 60)
        return self._access_token

    def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated request to the Zoom API."""
        url = f"{self._base_url}/{path.lstrip('/')}"
        headers = {
            "Authorization": f"Bearer {self._get_access_token()}",
            "Content-Type": "application/json",
        }

        try:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.request(method, url, headers=headers, json=json_body)
        except httpx.TransportError as exc:
            logger.error("Zoom API unreachable for %s %s: %s", method, path, exc)
            raise ZoomError(f"Zoom API unreachable: {exc}") from exc

        if response.status_code >= 400:
            body = _safe_json(response)
            message = body.get("message") or response.text[:500] or "Unknown error"
            logger.error(
                "Zoom API error %s for %s %s: %s",
                response.status_code,
                method,
                path,
                response.text[:500],
            )
            raise ZoomError(message=message, status_code=response.status_code, details=body)

        return cast(dict[str, Any], response.json())

    def create_meeting(
        self,
        *,
        topic: str,
        start_time: datetime,
        duration_minutes: int,
        host_email: str | None = None,
    ) -> MeetingDetails:
        """Schedule a meeting owned by the account's host user."""
        body: dict[str, Any] = {
            "topic": topic,
            "type": SCHEDULED_MEETING_TYPE,
            "start_time": start_time.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "duration": duration_minutes,
            "timezone": self._default_timezone,
            "settings": dict(MEETING_DEFAULT_SETTINGS),
        }
        if host_email:
            body["agenda"] = f"Hosted by {host_email}"

        meeting = self._request("POST", "users/me/meetings", json_body=body)
        try:
            return MeetingDetails(
                meeting_id=str(meeting["id"]),
                join_url=str(meeting["join_url"]),
                host_url=str(meeting["start_url"]),
            )
        except KeyError as exc:
            raise ZoomError(f"Zoom meeting response missing {exc}", details=meeting) from exc


class FakeZoomClient:
    """In-memory stub for testing/non-production environments."""

    def __init__(self, **kwargs: Any) -> None:
        self._calls: list[dict[str, Any]] = []
        self._errors: dict[str, ZoomError] = {}

    def set_error(self, method: str, error: ZoomError) -> None:
        """Inject a method-specific error for deterministic failure testing."""
        self._errors[method] = error

    def clear_errors(self) -> None:
        self._errors.clear()

    def create_meeting(
        self,
        *,
        topic: str,
        start_time: datetime,
        duration_minutes: int,
        host_email: str | None = None,
    ) -> MeetingDetails:
        self._calls.append(
            {
                "method": "create_meeting",
                "topic": topic,
                "start_time": start_time,
                "duration_minutes": duration_minutes,
                "host_email": host_email,
            }
        )
        error = self._errors.get("create_meeting")
        if error is not None:
            raise error
        meeting_id = str(uuid.uuid4().int)[:11]
        return MeetingDetails(
            meeting_id=meeting_id,
            join_url=f"https://zoom.us/j/{meeting_id}",
            host_url=f"https://zoom.us/s/{meeting_id}?zak=fake",
        )


def _safe_json(response: httpx.Response) -> dict[str, Any]:
    try:
        parsed = response.json()
    except ValueError:
        return {"raw": response.text[:500]}
    return parsed if isinstance(parsed, dict) else {"raw": response.text[:500]}
