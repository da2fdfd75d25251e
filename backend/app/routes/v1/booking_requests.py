# backend/app/routes/v1/booking_requests.py
"""
Booking request routes - API v1

Coach actions on pending live-lesson requests, mounted under
/api/v1/booking-requests. All business logic delegated to
BookingRequestService.

Endpoints:
    POST /{request_id}/accept   → Charge the athlete and create the booking (coach)
    POST /{request_id}/decline  → Decline the request (coach)
"""

import asyncio
import logging
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Path, status

from ...api.dependencies.auth import require_coach
from ...api.dependencies.services import get_booking_request_service
from ...core.exceptions import DomainException
from ...principal import Principal
from ...schemas.booking_request import AcceptResult, DeclineResponse
from ...services.booking_request_service import BookingRequestService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["booking-requests-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    raise exc.to_http_exception()


@router.post("/{request_id}/accept", response_model=AcceptResult)
async def accept_booking_request(
    request_id: str = Path(..., description="Booking request ULID"),
    coach: Principal = Depends(require_coach),
    service: BookingRequestService = Depends(get_booking_request_service),
) -> AcceptResult:
    """
    Accept a pending booking request.

    The response is one of three outcomes, told apart by ``outcome``:
    ``success`` (charged and booked), ``requires_action`` (the athlete has
    to authenticate the payment) or ``failure`` (card declined). Only
    ``success`` moves the request out of pending.
    """
    try:
        return await asyncio.to_thread(service.accept_request, request_id, coach.id)
    except DomainException as exc:
        handle_domain_exception(exc)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error accepting booking request {request_id}: {str(e)}")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to accept request")


@router.post("/{request_id}/decline", response_model=DeclineResponse)
async def decline_booking_request(
    request_id: str = Path(..., description="Booking request ULID"),
    coach: Principal = Depends(require_coach),
    service: BookingRequestService = Depends(get_booking_request_service),
) -> DeclineResponse:
    """Decline a pending booking request. Nothing was charged, so nothing is refunded."""
    try:
        return await asyncio.to_thread(service.decline_request, request_id, coach.id)
    except DomainException as exc:
        handle_domain_exception(exc)
