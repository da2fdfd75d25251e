# backend/app/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Each factory builds a service around the request's database session. Route
tests override these with ``app.dependency_overrides``.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...services.booking_request_service import BookingRequestService
from ...services.commission_service import CommissionService
from ...services.expiration_service import ExpirationService
from ...services.film_review_service import FilmReviewService
from ...services.stripe_service import StripeService
from .database import get_db


def get_stripe_service(db: Session = Depends(get_db)) -> StripeService:
    return StripeService(db)


def get_commission_service(db: Session = Depends(get_db)) -> CommissionService:
    return CommissionService(db)


def get_booking_request_service(
    db: Session = Depends(get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
    commission_service: CommissionService = Depends(get_commission_service),
) -> BookingRequestService:
    return BookingRequestService(
        db, stripe_service=stripe_service, commission_service=commission_service
    )


def get_film_review_service(
    db: Session = Depends(get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
) -> FilmReviewService:
    return FilmReviewService(db, stripe_service=stripe_service)


def get_expiration_service(db: Session = Depends(get_db)) -> ExpirationService:
    return ExpirationService(db)
