"""Domain entities for phone-agent routing, billing and jobs."""

from agentline.domain.entities.events import (
    CallAnalyzedEvent,
    CheckoutCompletedEvent,
    CheckoutSession,
    PaymentIntent,
    PaymentSucceededEvent,
    RetellCall,
    RetellEvent,
    StripeEvent,
    UnhandledRetellEvent,
    UnhandledStripeEvent,
    parse_retell_event,
    parse_stripe_event,
)
from agentline.domain.entities.jobs import JobStatus, JobType, can_transition, is_transient_error
from agentline.domain.entities.routing import PhoneStatus, RoutingResult

__all__ = [
    "CallAnalyzedEvent",
    "CheckoutCompletedEvent",
    "CheckoutSession",
    "JobStatus",
    "JobType",
    "PaymentIntent",
    "PaymentSucceededEvent",
    "PhoneStatus",
    "RetellCall",
    "RetellEvent",
    "RoutingResult",
    "StripeEvent",
    "UnhandledRetellEvent",
    "UnhandledStripeEvent",
    "can_transition",
    "is_transient_error",
    "parse_retell_event",
    "parse_stripe_event",
]
