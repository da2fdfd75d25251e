# backend/app/routes/v1/__init__.py
"""
API v1 Routes

Versioned API endpoints under /api/v1.
All new endpoints should be added here.
"""

from . import (
    admin_commission,
    booking_requests,
    fee_breakdown,
    film_reviews,
    health,
    internal,
    prometheus,
    webhooks_stripe,
)

__all__ = [
    "admin_commission",
    "booking_requests",
    "fee_breakdown",
    "film_reviews",
    "health",
    "internal",
    "prometheus",
    "webhooks_stripe",
]
