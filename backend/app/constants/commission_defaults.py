"""Default commission values and admin bounds."""

from __future__ import annotations

from typing import Any, Dict

COMMISSION_DEFAULTS: Dict[str, Any] = {
    "platform_fee_percentage": 10.0,
    "athlete_service_fee_percentage": 0.0,
    "athlete_service_fee_flat_cents": 0,
}

MAX_FEE_PERCENTAGE = 30.0
MAX_FLAT_FEE_CENTS = 2000
