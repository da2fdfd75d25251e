# backend/app/core/exceptions.py
"""
Domain-specific exceptions for the CoachLane platform.

These exceptions carry business-focused messages and a stable error code.
Route handlers convert them with ``to_http_exception()``.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class UnauthorizedException(DomainException):
    """Raised when the caller is not authenticated."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenException(DomainException):
    """Raised when the caller lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class CoachPayoutNotConfiguredException(ValidationException):
    """The coach has no payout account, so the athlete must not be charged."""

    def __init__(self, coach_id: str):
        super().__init__(
            message="Coach has not finished payout setup. Complete Stripe onboarding to accept bookings.",
            code="COACH_PAYOUT_NOT_CONFIGURED",
            details={"coach_id": coach_id},
        )


class MissingPaymentMethodException(ValidationException):
    """Raised when a booking request carries no saved payment method."""

    def __init__(self, request_id: str):
        super().__init__(
            message="No payment method on file for this request",
            code="MISSING_PAYMENT_METHOD",
            details={"request_id": request_id},
        )


class AlreadyProcessedException(ConflictException):
    """Raised when a status transition loses its compare-and-swap."""

    def __init__(self, resource: str, resource_id: str, current_status: Optional[str] = None):
        details: Dict[str, Any] = {"resource": resource, "id": resource_id}
        if current_status is not None:
            details["current_status"] = current_status
        super().__init__(
            message=f"This {resource} has already been processed",
            code="ALREADY_PROCESSED",
            details=details,
        )


class PaymentOutcomeUnknownException(ServiceException):
    """Capture timed out and reconciliation could not find the payment intent."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, request_id: str):
        super().__init__(
            message="Payment status could not be confirmed. Please check again before retrying.",
            code="PAYMENT_OUTCOME_UNKNOWN",
            details={"request_id": request_id},
        )


class CaptureWithoutBookingException(ServiceException):
    """Money moved but the booking could not be recorded. Needs manual reconciliation."""

    def __init__(self, request_id: str, payment_intent_id: str):
        self.request_id = request_id
        self.payment_intent_id = payment_intent_id
        super().__init__(
            message="Payment was captured but the booking could not be saved. Support has been notified.",
            code="CAPTURE_WITHOUT_BOOKING",
            details={"request_id": request_id, "payment_intent_id": payment_intent_id},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    Used when data access operations fail, such as connection issues,
    query failures, or constraint violations.
    """
