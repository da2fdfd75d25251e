"""Pydantic models for webhook endpoint responses."""

from ._strict_base import StrictModel


class WebhookResponse(StrictModel):
    """Acknowledgement returned to Stripe. Always 200 once the signature checks out."""

    status: str
    event_type: str
    message: str


__all__ = ["WebhookResponse"]
