# backend/app/routes/v1/webhooks_stripe.py
"""
Stripe webhook - API v1

Endpoints:
    POST /stripe  → Finish payments the athlete authenticated out of band

Only ``payment_intent.succeeded`` events that carry a ``booking_request_id``
are acted on. Everything else is acknowledged and ignored.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ...api.dependencies.services import get_booking_request_service, get_stripe_service
from ...core.exceptions import AlreadyProcessedException, DomainException, ValidationException
from ...schemas.webhook_responses import WebhookResponse
from ...services.booking_request_service import BookingRequestService
from ...services.stripe_service import StripeService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks-v1"])

PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"


@router.post("/stripe", response_model=WebhookResponse)
async def handle_stripe_webhook(
    request: Request,
    stripe_service: StripeService = Depends(get_stripe_service),
    booking_request_service: BookingRequestService = Depends(get_booking_request_service),
) -> WebhookResponse:
    """
    Handle Stripe webhook events.

    Returns 400 for a missing or invalid signature. Once verified, the event
    is always acknowledged with 200 so Stripe stops retrying.
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    if not sig_header:
        logger.warning("Webhook received without signature")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No signature")

    try:
        event = stripe_service.construct_webhook_event(payload, sig_header)
    except ValidationException as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    except DomainException as exc:
        logger.error(f"Webhook configuration error: {exc.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Webhook configuration error"
        )

    event_type = event.get("type", "unknown")
    if event_type != PAYMENT_INTENT_SUCCEEDED:
        return WebhookResponse(status="ignored", event_type=event_type, message="Event not handled")

    intent = event["data"]["object"]
    metadata = intent.get("metadata") or {}
    request_id = metadata.get("booking_request_id")
    if not request_id:
        return WebhookResponse(
            status="ignored", event_type=event_type, message="No booking request attached"
        )

    try:
        result = await asyncio.to_thread(
            booking_request_service.finalize_authenticated_payment, request_id, intent["id"]
        )
    except AlreadyProcessedException:
        logger.info(f"Booking request {request_id} already finalized; ignoring {intent['id']}")
        return WebhookResponse(status="ignored", event_type=event_type, message="Already processed")
    except DomainException as exc:
        logger.error(f"Webhook finalize failed for booking request {request_id}: {exc.message}")
        return WebhookResponse(
            status="error",
            event_type=event_type,
            message="Error logged - returning 200 to prevent retries",
        )

    if result is None:
        return WebhookResponse(
            status="ignored", event_type=event_type, message="Payment intent not awaiting completion"
        )
    logger.info(f"Booking request {request_id} finalized via webhook as booking {result.booking_id}")
    return WebhookResponse(status="success", event_type=event_type, message="Booking created")
