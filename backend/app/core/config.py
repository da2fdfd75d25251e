# backend/app/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal, Set

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import BRAND_NAME


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.info(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


NON_PROD_SITE_MODES: Set[str] = {
    "local",
    "dev",
    "development",
    "stg",
    "stage",
    "staging",
    "preview",
}
PROD_SITE_MODES: Set[str] = {"prod", "production", "live"}


def _classify_site_mode(raw_site_mode: str | None) -> tuple[str, bool, bool]:
    """Return normalized site mode with production/non-prod classification."""

    normalized = (raw_site_mode or "").strip().lower()
    is_prod = normalized in PROD_SITE_MODES
    is_non_prod = normalized in NON_PROD_SITE_MODES
    return normalized, is_prod, is_non_prod


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    secret_key: SecretStr = Field(
        default=SecretStr("dev-secret-key-not-for-production"),
        description="Secret key used to verify principal JWTs",
    )
    algorithm: str = "HS256"

    site_mode: str = Field(default="local", alias="SITE_MODE")

    # Environment (derived from SITE_MODE)
    environment: str = (
        "production" if _classify_site_mode(os.getenv("SITE_MODE", "local"))[1] else "development"
    )

    database_url: str = Field(
        default="sqlite:///./coachlane.db",
        alias="DATABASE_URL",
        description="SQLAlchemy database URL",
    )
    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    # Frontend URL - used for chat links and payment completion links
    frontend_url: str = "http://localhost:3000"

    # Email settings
    email_provider: Literal["console", "resend"] = Field(
        default="console",
        alias="EMAIL_PROVIDER",
        description="Email provider name",
    )
    resend_api_key: str | None = Field(
        default=None,
        alias="RESEND_API_KEY",
        description="API key for Resend provider (optional)",
    )
    from_email: str = f"{BRAND_NAME} <hello@coachlane.app>"
    email_timeout_seconds: float = Field(default=10.0, description="Upper bound for an email send")

    # Stripe Configuration
    stripe_secret_key: SecretStr = Field(
        default=SecretStr(""),
        description="Stripe secret key for backend API calls",
    )
    stripe_webhook_secret: SecretStr = Field(
        default=SecretStr(""),
        description="Signing secret for Stripe webhook deliveries",
    )
    stripe_currency: str = Field(default="usd", description="Default currency for payments")
    stripe_timeout_seconds: int = Field(default=8, description="Network timeout for Stripe calls")

    # Zoom (server-to-server OAuth app)
    zoom_enabled: bool = Field(default=False, alias="ZOOM_ENABLED")
    zoom_account_id: str | None = Field(default=None, alias="ZOOM_ACCOUNT_ID")
    zoom_client_id: str | None = Field(default=None, alias="ZOOM_CLIENT_ID")
    zoom_client_secret: SecretStr | None = Field(default=None, alias="ZOOM_CLIENT_SECRET")
    zoom_api_base_url: str = "https://api.zoom.us/v2"
    zoom_token_url: str = "https://zoom.us/oauth/token"
    zoom_default_timezone: str = "America/New_York"
    zoom_timeout_seconds: float = Field(default=10.0, description="Network timeout for Zoom calls")

    # Scheduled job trigger
    cron_secret: SecretStr | None = Field(default=None, alias="CRON_SECRET")

    # Booking workflow
    booking_request_expiry_hours: int = Field(
        default=72, description="Pending requests older than this are expired by the sweeper"
    )
    default_turnaround_hours: int = Field(
        default=48, description="Film review turnaround when the listing does not set one"
    )
    default_session_minutes: int = Field(
        default=60, description="Meeting length when the listing does not set a duration"
    )

    @field_validator("frontend_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("booking_request_expiry_hours", "default_turnaround_hours")
    @classmethod
    def _positive_hours(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("hour windows must be positive")
        return value

    @property
    def is_production(self) -> bool:
        return _classify_site_mode(self.site_mode)[1]

    @property
    def stripe_configured(self) -> bool:
        return bool(self.stripe_secret_key.get_secret_value())

    @property
    def zoom_configured(self) -> bool:
        secret = self.zoom_client_secret.get_secret_value() if self.zoom_client_secret else ""
        return bool(self.zoom_account_id and self.zoom_client_id and secret)

    def chat_url(self, conversation_id: str) -> str:
        return f"{self.frontend_url}/messages/{conversation_id}"


settings = Settings()
logger.info(
    "[CONFIG] site_mode=%s email_provider=%s zoom_enabled=%s",
    settings.site_mode,
    settings.email_provider,
    settings.zoom_enabled,
)
