# backend/app/routes/v1/fee_breakdown.py
"""
Public fee breakdown - API v1

Endpoints:
    GET /fee-breakdown?price_cents=  → What the athlete pays for a base price (public)
"""

import asyncio
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...api.dependencies.services import get_commission_service
from ...core.exceptions import DomainException
from ...schemas.commission import FeeBreakdownResponse
from ...services.commission_service import CommissionService

router = APIRouter(tags=["pricing-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    raise exc.to_http_exception()


@router.get("/fee-breakdown", response_model=FeeBreakdownResponse)
async def get_fee_breakdown(
    price_cents: str = Query(..., description="Base price in cents"),
    service: CommissionService = Depends(get_commission_service),
) -> FeeBreakdownResponse:
    """The platform cut is internal; only the athlete-facing numbers are returned."""
    try:
        base_price_cents = int(price_cents)
    except ValueError:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Invalid price")
    try:
        fees = await asyncio.to_thread(service.fee_breakdown, base_price_cents)
    except DomainException as exc:
        handle_domain_exception(exc)
    return FeeBreakdownResponse(
        base_price_cents=fees.base_price_cents,
        service_fee_cents=fees.athlete_surcharge_cents,
        total_cents=fees.total_charged_cents,
    )
