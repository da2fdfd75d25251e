"""Pydantic schemas for commission settings and fee breakdowns."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import ConfigDict, Field, model_validator

from ._strict_base import StrictModel, StrictRequestModel


class CommissionSettings(StrictModel):
    """Immutable snapshot of the commission policy, read once per operation."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    platform_fee_percentage: float = Field(..., ge=0, description="Platform cut of the base price")
    athlete_service_fee_percentage: float = Field(
        ..., ge=0, description="Percentage surcharge charged to the athlete"
    )
    athlete_service_fee_flat_cents: int = Field(
        ..., ge=0, description="Flat surcharge charged to the athlete"
    )


class CommissionSettingsLookup(StrictModel):
    """Settings plus where they came from; ``defaults`` when nothing usable was stored."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    settings: CommissionSettings
    source: Literal["stored", "defaults"]
    updated_at: Optional[datetime] = None


class CommissionSettingsUpdate(StrictRequestModel):
    """Partial admin update. Values are clamped to the allowed range when saved."""

    platform_fee_percentage: Optional[float] = None
    athlete_service_fee_percentage: Optional[float] = None
    athlete_service_fee_flat_cents: Optional[float] = None

    @model_validator(mode="after")
    def require_one_field(self) -> "CommissionSettingsUpdate":
        if not self.model_fields_set or all(
            getattr(self, name) is None for name in self.model_fields_set
        ):
            raise ValueError("At least one field must be provided")
        return self


class CommissionSettingsResponse(StrictModel):
    settings: CommissionSettings
    source: Literal["stored", "defaults"]
    updated_at: Optional[datetime] = None


class CommissionSettingsUpdateResponse(StrictModel):
    old_values: CommissionSettings
    new_values: CommissionSettings
    updated_at: datetime


class FeeBreakdown(StrictModel):
    """Fees for a base price; ``platform_cut_cents + coach_receives_cents == base_price_cents``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    base_price_cents: int
    platform_cut_cents: int
    athlete_surcharge_cents: int
    coach_receives_cents: int
    total_charged_cents: int


class FeeBreakdownResponse(StrictModel):
    base_price_cents: int
    service_fee_cents: int
    total_cents: int
