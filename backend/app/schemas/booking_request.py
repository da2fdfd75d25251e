"""Schemas for the coach-facing booking request actions."""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import Field

from ._strict_base import StrictModel


class AcceptSucceeded(StrictModel):
    """Payment captured and booking recorded."""

    outcome: Literal["success"] = "success"
    request_id: str
    booking_id: str
    payment_intent_id: str
    amount_paid_cents: int
    platform_fee_cents: int
    meeting_join_url: Optional[str] = None
    meeting_host_url: Optional[str] = None


class AcceptRequiresAction(StrictModel):
    """The athlete must authenticate the payment; the request stays pending."""

    outcome: Literal["requires_action"] = "requires_action"
    request_id: str
    payment_intent_id: str
    completion_url: str
    message: str


class AcceptFailed(StrictModel):
    """The charge was declined; the request stays pending."""

    outcome: Literal["failure"] = "failure"
    request_id: str
    reason_code: str
    message: str


AcceptResult = Annotated[
    Union[AcceptSucceeded, AcceptRequiresAction, AcceptFailed],
    Field(discriminator="outcome"),
]


class DeclineResponse(StrictModel):
    request_id: str
    status: Literal["declined"] = "declined"


class SweepResponse(StrictModel):
    expired_count: int
    error_count: int
    total_processed: int
