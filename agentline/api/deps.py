"""FastAPI dependencies wiring repositories, API clients and services.

External API clients are built once in the application lifespan and kept on
`app.state`; everything else is cheap and built per request.
"""

from typing import Annotated, Any

from fastapi import Depends, Request

from agentline.config import Settings, get_settings
from agentline.core.exceptions import ConfigurationError
from agentline.core.logging import get_logger
from agentline.domain.services.agent_service import AgentService
from agentline.domain.services.billing_service import BillingService
from agentline.domain.services.call_webhook_service import CallWebhookService
from agentline.domain.services.integration_service import IntegrationService
from agentline.domain.services.job_queue_service import JobQueueWorker
from agentline.domain.services.phone_number_service import PhoneNumberService
from agentline.domain.services.routing_service import RoutingService
from agentline.infrastructure.database.connection import get_session_factory
from agentline.infrastructure.database.repositories import (
    AgentRepository,
    CallHistoryRepository,
    ClientRepository,
    PhoneNumberRepository,
    WebhookJobRepository,
)
from agentline.infrastructure.payments.client import PaymentGateway
from agentline.infrastructure.retell.client import RetellClient
from agentline.infrastructure.telephony.client import TelephonyClient

logger = get_logger(__name__)


# === Client lifecycle ===


def build_api_clients(settings: Settings) -> dict[str, Any]:
    """Construct the external API clients that have credentials configured."""
    clients: dict[str, Any] = {"retell": None, "telephony": None, "payments": None}
    for name, factory in (
        ("retell", RetellClient),
        ("telephony", TelephonyClient),
        ("payments", PaymentGateway),
    ):
        try:
            clients[name] = factory()
        except ConfigurationError as e:
            logger.warning("API client not configured", client=name, reason=e.message)
    return clients


async def close_api_clients(state: Any) -> None:
    retell = getattr(state, "retell", None)
    if retell is not None:
        await retell.close()


def _from_state(request: Request, name: str, label: str) -> Any:
    client = getattr(request.app.state, name, None)
    if client is None:
        raise ConfigurationError(f"{label} integration is not configured")
    return client


def get_retell_client(request: Request) -> RetellClient:
    return _from_state(request, "retell", "Retell")


def get_telephony_client(request: Request) -> TelephonyClient:
    return _from_state(request, "telephony", "Twilio")


def get_payment_gateway(request: Request) -> PaymentGateway:
    return _from_state(request, "payments", "Stripe")


# === Repositories ===


def get_client_repository() -> ClientRepository:
    return ClientRepository(get_session_factory())


def get_agent_repository() -> AgentRepository:
    return AgentRepository(get_session_factory())


def get_phone_number_repository() -> PhoneNumberRepository:
    return PhoneNumberRepository(get_session_factory())


def get_call_history_repository() -> CallHistoryRepository:
    return CallHistoryRepository(get_session_factory())


# === Services ===


def build_routing_service(telephony: TelephonyClient, settings: Settings) -> RoutingService:
    factory = get_session_factory()
    return RoutingService(
        telephony=telephony,
        clients=ClientRepository(factory),
        phone_numbers=PhoneNumberRepository(factory),
        jobs=WebhookJobRepository(factory),
        fallback_voice_url=settings.twilio_out_of_minutes_twiml_url,
    )


def build_job_queue_worker(
    retell: RetellClient | None,
    telephony: TelephonyClient | None,
    settings: Settings,
) -> JobQueueWorker:
    routing = build_routing_service(telephony, settings) if telephony is not None else None
    return JobQueueWorker(
        jobs=WebhookJobRepository(get_session_factory()),
        retell=retell,
        routing=routing,
        batch_size=settings.queue_batch_size,
        max_retries=settings.queue_max_retries,
        job_delay_seconds=settings.queue_job_delay_seconds,
        job_timeout_seconds=settings.queue_job_timeout_seconds,
        failure_alert_threshold=settings.queue_failure_alert_threshold,
        stale_after_seconds=settings.queue_stale_job_seconds,
    )


def get_routing_service(
    telephony: Annotated[TelephonyClient, Depends(get_telephony_client)],
) -> RoutingService:
    return build_routing_service(telephony, get_settings())


def get_optional_routing_service(request: Request) -> RoutingService | None:
    """Routing service, or None while Twilio is not configured."""
    telephony = getattr(request.app.state, "telephony", None)
    if telephony is None:
        return None
    return build_routing_service(telephony, get_settings())


def get_call_webhook_service(
    routing: Annotated[RoutingService | None, Depends(get_optional_routing_service)],
    agents: Annotated[AgentRepository, Depends(get_agent_repository)],
    calls: Annotated[CallHistoryRepository, Depends(get_call_history_repository)],
) -> CallWebhookService:
    return CallWebhookService(agents=agents, calls=calls, routing=routing)


def get_billing_service(
    payments: Annotated[PaymentGateway, Depends(get_payment_gateway)],
    telephony: Annotated[TelephonyClient, Depends(get_telephony_client)],
    routing: Annotated[RoutingService, Depends(get_routing_service)],
    clients: Annotated[ClientRepository, Depends(get_client_repository)],
    phone_numbers: Annotated[PhoneNumberRepository, Depends(get_phone_number_repository)],
) -> BillingService:
    settings = get_settings()
    return BillingService(
        payments=payments,
        telephony=telephony,
        clients=clients,
        phone_numbers=phone_numbers,
        routing=routing,
        minute_packages=settings.minute_packages,
        fallback_voice_url=settings.twilio_out_of_minutes_twiml_url,
        phone_number_monthly_cost=settings.phone_number_monthly_cost,
    )


def get_job_queue_worker(request: Request) -> JobQueueWorker:
    state = request.app.state
    return build_job_queue_worker(
        getattr(state, "retell", None),
        getattr(state, "telephony", None),
        get_settings(),
    )


def get_agent_service(
    retell: Annotated[RetellClient, Depends(get_retell_client)],
    agents: Annotated[AgentRepository, Depends(get_agent_repository)],
) -> AgentService:
    settings = get_settings()
    return AgentService(
        retell=retell,
        agents=agents,
        webhook_url=settings.retell_webhook_url,
        default_model=settings.retell_default_model,
        default_voice=settings.retell_default_voice,
        default_language=settings.retell_default_language,
        default_prompt=settings.retell_default_prompt,
    )


def get_phone_number_service(
    request: Request,
    telephony: Annotated[TelephonyClient, Depends(get_telephony_client)],
    retell: Annotated[RetellClient, Depends(get_retell_client)],
    agents: Annotated[AgentRepository, Depends(get_agent_repository)],
    phone_numbers: Annotated[PhoneNumberRepository, Depends(get_phone_number_repository)],
) -> PhoneNumberService:
    settings = get_settings()
    return PhoneNumberService(
        telephony=telephony,
        retell=retell,
        payments=getattr(request.app.state, "payments", None),
        agents=agents,
        phone_numbers=phone_numbers,
        app_url=settings.app_url,
        sip_trunk_uri=settings.twilio_sip_trunk_uri,
        phone_number_price_id=settings.stripe_phone_number_price_id,
    )


def get_integration_service(
    retell: Annotated[RetellClient, Depends(get_retell_client)],
    agents: Annotated[AgentRepository, Depends(get_agent_repository)],
    agent_service: Annotated[AgentService, Depends(get_agent_service)],
) -> IntegrationService:
    return IntegrationService(retell=retell, agents=agents, agent_service=agent_service)
