# backend/app/routes/v1/admin_commission.py
"""
Admin commission settings - API v1

Endpoints:
    GET /commission-settings  → Current settings and their source (admin)
    PUT /commission-settings  → Partial update, values clamped into range (admin)
"""

import asyncio
import logging
from typing import NoReturn

from fastapi import APIRouter, Body, Depends

from ...api.dependencies.auth import require_admin
from ...api.dependencies.services import get_commission_service
from ...core.exceptions import DomainException
from ...principal import Principal
from ...schemas.commission import (
    CommissionSettingsResponse,
    CommissionSettingsUpdate,
    CommissionSettingsUpdateResponse,
)
from ...services.commission_service import CommissionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin-commission-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    raise exc.to_http_exception()


@router.get("/commission-settings", response_model=CommissionSettingsResponse)
async def get_commission_settings(
    _admin: Principal = Depends(require_admin),
    service: CommissionService = Depends(get_commission_service),
) -> CommissionSettingsResponse:
    lookup = await asyncio.to_thread(service.get_settings)
    return CommissionSettingsResponse(
        settings=lookup.settings, source=lookup.source, updated_at=lookup.updated_at
    )


@router.put("/commission-settings", response_model=CommissionSettingsUpdateResponse)
async def update_commission_settings(
    payload: CommissionSettingsUpdate = Body(...),
    admin: Principal = Depends(require_admin),
    service: CommissionService = Depends(get_commission_service),
) -> CommissionSettingsUpdateResponse:
    """Out-of-range values are clamped, not rejected."""
    try:
        return await asyncio.to_thread(
            service.update_settings, payload, admin_id=admin.id, admin_email=admin.email
        )
    except DomainException as exc:
        handle_domain_exception(exc)
