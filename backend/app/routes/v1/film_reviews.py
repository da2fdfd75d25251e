# backend/app/routes/v1/film_reviews.py
"""
Film review routes - API v1

Coach-side film review workflow under /api/v1/film-reviews.
All business logic delegated to FilmReviewService.

Endpoints:
    GET /{booking_id}            → Review detail with live deadline state (coach)
    POST /{booking_id}/accept    → Accept and reveal the film (coach)
    POST /{booking_id}/decline   → Decline and refund the athlete (coach)
    POST /{booking_id}/complete  → Submit the structured review (coach)
"""

import asyncio
import logging
from typing import NoReturn

from fastapi import APIRouter, Body, Depends, Path

from ...api.dependencies.auth import require_coach
from ...api.dependencies.services import get_film_review_service
from ...core.exceptions import DomainException
from ...principal import Principal
from ...schemas.film_review import (
    FilmReviewAcceptResponse,
    FilmReviewCompleteResponse,
    FilmReviewDeclineResponse,
    FilmReviewDetail,
    StructuredReviewSubmission,
)
from ...services.film_review_service import FilmReviewService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["film-reviews-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    raise exc.to_http_exception()


@router.get("/{booking_id}", response_model=FilmReviewDetail)
async def get_film_review(
    booking_id: str = Path(..., description="Booking ULID"),
    coach: Principal = Depends(require_coach),
    service: FilmReviewService = Depends(get_film_review_service),
) -> FilmReviewDetail:
    """The film URL is only included once the review has been accepted."""
    try:
        return await asyncio.to_thread(service.get_review_for_coach, booking_id, coach.id)
    except DomainException as exc:
        handle_domain_exception(exc)


@router.post("/{booking_id}/accept", response_model=FilmReviewAcceptResponse)
async def accept_film_review(
    booking_id: str = Path(..., description="Booking ULID"),
    coach: Principal = Depends(require_coach),
    service: FilmReviewService = Depends(get_film_review_service),
) -> FilmReviewAcceptResponse:
    try:
        return await asyncio.to_thread(service.accept_review, booking_id, coach.id)
    except DomainException as exc:
        handle_domain_exception(exc)


@router.post("/{booking_id}/decline", response_model=FilmReviewDeclineResponse)
async def decline_film_review(
    booking_id: str = Path(..., description="Booking ULID"),
    coach: Principal = Depends(require_coach),
    service: FilmReviewService = Depends(get_film_review_service),
) -> FilmReviewDeclineResponse:
    """
    Decline a pending film review.

    The athlete is refunded in full. If the refund fails the decline still
    stands and ``refund_issued`` is false.
    """
    try:
        return await asyncio.to_thread(service.decline_review, booking_id, coach.id)
    except DomainException as exc:
        handle_domain_exception(exc)


@router.post("/{booking_id}/complete", response_model=FilmReviewCompleteResponse)
async def complete_film_review(
    booking_id: str = Path(..., description="Booking ULID"),
    payload: StructuredReviewSubmission = Body(...),
    coach: Principal = Depends(require_coach),
    service: FilmReviewService = Depends(get_film_review_service),
) -> FilmReviewCompleteResponse:
    """Submit the review. Submissions after the deadline are accepted and flagged late."""
    try:
        return await asyncio.to_thread(service.complete_review, booking_id, coach.id, payload)
    except DomainException as exc:
        handle_domain_exception(exc)
