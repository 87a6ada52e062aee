"""Inbound webhook event models.

Both senders use an open set of event types. Only the types this service
acts on get a typed model; everything else parses to an "unhandled" model
that callers acknowledge without side effects.
"""

import json
import math
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

CALL_ANALYZED = "call_analyzed"
CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
PHONE_NUMBER_SUBSCRIPTION = "phone_number_subscription"


# === Retell ===


class RetellCallCost(BaseModel):
    model_config = ConfigDict(extra="allow")

    total_duration_seconds: Optional[float] = None


class RetellCall(BaseModel):
    """Call payload of a Retell lifecycle event."""

    model_config = ConfigDict(extra="allow")

    call_id: str = Field(..., description="Retell call ID")
    agent_id: str = Field(..., description="Retell agent ID")
    from_number: Optional[str] = None
    to_number: Optional[str] = None
    transcript: Optional[str] = None
    call_status: Optional[str] = None
    call_cost: Optional[RetellCallCost] = None

    @property
    def duration_seconds(self) -> int:
        if self.call_cost is None or self.call_cost.total_duration_seconds is None:
            return 0
        # Rounded up: 60.5 s bills as 2 minutes
        return math.ceil(self.call_cost.total_duration_seconds)


class CallAnalyzedEvent(BaseModel):
    event: Literal["call_analyzed"]
    call: RetellCall


class UnhandledRetellEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    event: str = ""


RetellEvent = CallAnalyzedEvent | UnhandledRetellEvent


def parse_retell_event(body: bytes) -> RetellEvent:
    """Parse an already-verified Retell webhook body.

    Raises:
        ValueError: If the body is not JSON or a call_analyzed payload is malformed
    """
    data = json.loads(body)
    if not isinstance(data, dict):
        raise ValueError("Retell event body must be a JSON object")
    if data.get("event") == CALL_ANALYZED:
        return CallAnalyzedEvent.model_validate(data)
    return UnhandledRetellEvent(event=str(data.get("event") or ""))


# === Stripe ===


class CustomerDetails(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: Optional[str] = None


class CheckoutSession(BaseModel):
    """Subset of a Stripe Checkout Session object."""

    model_config = ConfigDict(extra="allow")

    id: str
    customer: Optional[str] = None
    customer_email: Optional[str] = None
    customer_details: Optional[CustomerDetails] = None
    subscription: Optional[str] = None
    amount_total: Optional[int] = None
    metadata: dict[str, str] = Field(default_factory=dict)

    @property
    def email(self) -> Optional[str]:
        if self.customer_email:
            return self.customer_email
        if self.customer_details is not None:
            return self.customer_details.email
        return None

    @property
    def is_phone_number_subscription(self) -> bool:
        return self.metadata.get("type") == PHONE_NUMBER_SUBSCRIPTION


class PaymentIntent(BaseModel):
    """Subset of a Stripe PaymentIntent object."""

    model_config = ConfigDict(extra="allow")

    id: str
    amount: Optional[int] = None
    receipt_email: Optional[str] = None
    metadata: dict[str, str] = Field(default_factory=dict)

    @property
    def email(self) -> Optional[str]:
        return self.receipt_email or self.metadata.get("customer_email")


class CheckoutCompletedEvent(BaseModel):
    id: str
    type: Literal["checkout.session.completed"]
    session: CheckoutSession


class PaymentSucceededEvent(BaseModel):
    id: str
    type: Literal["payment_intent.succeeded"]
    payment_intent: PaymentIntent


class UnhandledStripeEvent(BaseModel):
    id: str = ""
    type: str = ""


StripeEvent = CheckoutCompletedEvent | PaymentSucceededEvent | UnhandledStripeEvent


def parse_stripe_event(payload: bytes) -> StripeEvent:
    """Parse an already-verified Stripe event payload.

    Raises:
        ValueError: If the payload is not a JSON event object
    """
    data = json.loads(payload)
    if not isinstance(data, dict):
        raise ValueError("Stripe event payload must be a JSON object")

    event_id = str(data.get("id") or "")
    event_type = str(data.get("type") or "")
    obj: dict[str, Any] = (data.get("data") or {}).get("object") or {}

    if event_type == CHECKOUT_SESSION_COMPLETED:
        return CheckoutCompletedEvent(
            id=event_id,
            type=event_type,
            session=CheckoutSession.model_validate(obj),
        )
    if event_type == PAYMENT_INTENT_SUCCEEDED:
        return PaymentSucceededEvent(
            id=event_id,
            type=event_type,
            payment_intent=PaymentIntent.model_validate(obj),
        )
    return UnhandledStripeEvent(id=event_id, type=event_type)
