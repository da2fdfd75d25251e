# backend/app/routes/v1/internal.py
"""
Internal routes - API v1

Endpoints:
    POST /expire-requests  → Run the stale-request sweep (scheduler, bearer CRON_SECRET)
"""

import asyncio
import hmac
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ...api.dependencies.services import get_expiration_service
from ...core.config import settings
from ...schemas.booking_request import SweepResponse
from ...services.expiration_service import ExpirationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["internal"], include_in_schema=False)


def _verify_cron_secret(request: Request) -> None:
    secret = settings.cron_secret.get_secret_value() if settings.cron_secret else ""
    header = request.headers.get("Authorization", "")
    if not secret or not hmac.compare_digest(header, f"Bearer {secret}"):
        logger.warning("Rejected internal sweep call with bad or missing credentials")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


@router.post("/expire-requests", response_model=SweepResponse)
async def expire_requests(
    request: Request,
    service: ExpirationService = Depends(get_expiration_service),
) -> SweepResponse:
    _verify_cron_secret(request)
    result = await asyncio.to_thread(service.expire_stale_requests)
    return SweepResponse(**result.to_dict())
