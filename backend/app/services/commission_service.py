"""
Commission policy.

Settings live in the ``platform_config`` table under the ``commission`` key and
are read once per operation into an immutable ``CommissionSettings``. Reading
never blocks checkout: anything missing or unreadable resolves to the defaults.
Admin updates clamp values into range before they are stored; reads trust
whatever is stored.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
import logging
import math
from typing import Any, Dict

from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..constants.commission_defaults import (
    COMMISSION_DEFAULTS,
    MAX_FEE_PERCENTAGE,
    MAX_FLAT_FEE_CENTS,
)
from ..core.exceptions import RepositoryException, ValidationException
from ..models.platform_config import COMMISSION_CONFIG_KEY
from ..repositories.factory import RepositoryFactory
from ..schemas.commission import (
    CommissionSettings,
    CommissionSettingsLookup,
    CommissionSettingsUpdate,
    CommissionSettingsUpdateResponse,
    FeeBreakdown,
)
from .base import BaseService

logger = logging.getLogger(__name__)

DEFAULT_COMMISSION_SETTINGS = CommissionSettings(**COMMISSION_DEFAULTS)


def _percent_of(base_price_cents: int, percentage: float) -> int:
    """``base * pct / 100`` rounded half-up to whole cents."""
    raw = Decimal(base_price_cents) * Decimal(str(percentage)) / Decimal(100)
    return int(raw.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def compute_fees(base_price_cents: int, settings: CommissionSettings) -> FeeBreakdown:
    """Pure fee computation over a settings snapshot."""
    if base_price_cents < 0:
        raise ValueError("base_price_cents must be non-negative")
    platform_cut = min(_percent_of(base_price_cents, settings.platform_fee_percentage), base_price_cents)
    surcharge = (
        _percent_of(base_price_cents, settings.athlete_service_fee_percentage)
        + settings.athlete_service_fee_flat_cents
    )
    return FeeBreakdown(
        base_price_cents=base_price_cents,
        platform_cut_cents=platform_cut,
        athlete_surcharge_cents=surcharge,
        coach_receives_cents=base_price_cents - platform_cut,
        total_charged_cents=base_price_cents + surcharge,
    )


def clamp_percentage(value: float) -> float:
    if math.isnan(value):
        raise ValidationException("Percentage must be a number", code="INVALID_COMMISSION_VALUE")
    return max(0.0, min(MAX_FEE_PERCENTAGE, float(value)))


def clamp_flat_cents(value: float) -> int:
    if math.isnan(value):
        raise ValidationException("Flat fee must be a number", code="INVALID_COMMISSION_VALUE")
    floored = int(Decimal(str(value)).to_integral_value(rounding=ROUND_FLOOR))
    return max(0, min(MAX_FLAT_FEE_CENTS, floored))


class CommissionService(BaseService):
    """Reads and updates the platform commission settings."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.config_repository = RepositoryFactory.create_platform_config_repository(db)

    def get_settings(self) -> CommissionSettingsLookup:
        """Current settings, or the defaults if none are stored or the stored value is unusable."""
        try:
            record = self.config_repository.get_by_key(COMMISSION_CONFIG_KEY)
        except RepositoryException as exc:
            self.logger.warning(f"Commission settings unreadable, using defaults: {exc}")
            return CommissionSettingsLookup(settings=DEFAULT_COMMISSION_SETTINGS, source="defaults")

        if record is None or not record.value_json:
            return CommissionSettingsLookup(settings=DEFAULT_COMMISSION_SETTINGS, source="defaults")

        merged: Dict[str, Any] = {**COMMISSION_DEFAULTS, **dict(record.value_json)}
        try:
            stored = CommissionSettings(**merged)
        except (ValidationError, TypeError) as exc:
            self.logger.warning(f"Stored commission settings invalid, using defaults: {exc}")
            return CommissionSettingsLookup(settings=DEFAULT_COMMISSION_SETTINGS, source="defaults")

        return CommissionSettingsLookup(settings=stored, source="stored", updated_at=record.updated_at)

    @BaseService.measure_operation("update_commission_settings")
    def update_settings(
        self, update: CommissionSettingsUpdate, *, admin_id: str, admin_email: str | None = None
    ) -> CommissionSettingsUpdateResponse:
        """Apply a partial update, clamping each provided value into range."""
        current = self.get_settings().settings
        new_values = current.model_dump()

        if update.platform_fee_percentage is not None:
            new_values["platform_fee_percentage"] = clamp_percentage(update.platform_fee_percentage)
        if update.athlete_service_fee_percentage is not None:
            new_values["athlete_service_fee_percentage"] = clamp_percentage(
                update.athlete_service_fee_percentage
            )
        if update.athlete_service_fee_flat_cents is not None:
            new_values["athlete_service_fee_flat_cents"] = clamp_flat_cents(
                update.athlete_service_fee_flat_cents
            )

        updated = CommissionSettings(**new_values)
        now = datetime.now(timezone.utc)
        with self.transaction():
            self.config_repository.upsert(
                key=COMMISSION_CONFIG_KEY, value=updated.model_dump(), updated_at=now
            )

        self.logger.info(
            "Commission settings updated",
            extra={
                "admin_id": admin_id,
                "admin_email": admin_email,
                "old_values": current.model_dump(),
                "new_values": updated.model_dump(),
            },
        )
        return CommissionSettingsUpdateResponse(old_values=current, new_values=updated, updated_at=now)

    def fee_breakdown(self, base_price_cents: int) -> FeeBreakdown:
        if base_price_cents <= 0:
            raise ValidationException("Invalid price", code="INVALID_PRICE")
        return compute_fees(base_price_cents, self.get_settings().settings)
