"""API v1 Pydantic schemas."""

from agentline.api.v1.schemas.account import (
    CallHistoryItem,
    CallHistoryResponse,
    MinutesResponse,
)
from agentline.api.v1.schemas.agents import (
    AgentCreateRequest,
    AgentListResponse,
    AgentResponse,
    AgentUpdateRequest,
    PromptUpdateRequest,
)
from agentline.api.v1.schemas.common import HealthResponse, SuccessResponse
from agentline.api.v1.schemas.integrations import (
    AddIntegrationRequest,
    IntegrationResponse,
    RemoveToolRequest,
)
from agentline.api.v1.schemas.phone_numbers import (
    AvailablePhoneNumber,
    CheckoutResponse,
    LinkRequest,
    PhoneNumberListResponse,
    PhoneNumberResponse,
    PhoneNumberSearchResponse,
    PurchaseRequest,
)
from agentline.api.v1.schemas.webhooks import (
    JobResultItem,
    ProcessQueueResponse,
    StripeWebhookResponse,
)

__all__ = [
    "AddIntegrationRequest",
    "AgentCreateRequest",
    "AgentListResponse",
    "AgentResponse",
    "AgentUpdateRequest",
    "AvailablePhoneNumber",
    "CallHistoryItem",
    "CallHistoryResponse",
    "CheckoutResponse",
    "HealthResponse",
    "IntegrationResponse",
    "JobResultItem",
    "LinkRequest",
    "MinutesResponse",
    "PhoneNumberListResponse",
    "PhoneNumberResponse",
    "PhoneNumberSearchResponse",
    "ProcessQueueResponse",
    "PromptUpdateRequest",
    "PurchaseRequest",
    "RemoveToolRequest",
    "StripeWebhookResponse",
    "SuccessResponse",
]
