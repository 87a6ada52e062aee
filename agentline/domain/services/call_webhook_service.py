"""Call-completion processing: history, minute charging, fallback trigger."""

import math
from dataclasses import dataclass
from enum import Enum

from agentline.core.exceptions import ConfigurationError
from agentline.core.logging import get_logger
from agentline.domain.entities.events import CallAnalyzedEvent, RetellEvent
from agentline.domain.entities.routing import PhoneStatus, RoutingResult
from agentline.domain.services.routing_service import RoutingService
from agentline.infrastructure.database.repositories import (
    AgentRepository,
    CallHistoryRepository,
)

logger = get_logger(__name__)


class CallOutcome(str, Enum):
    IGNORED = "ignored"
    UNKNOWN_AGENT = "unknown_agent"
    DUPLICATE = "duplicate"
    RECORDED = "recorded"


@dataclass
class CallProcessingResult:
    outcome: CallOutcome
    client_id: str | None = None
    suspension: RoutingResult | None = None


def billable_minutes(duration_seconds: int) -> int:
    """Whole minutes charged for a call, rounded up."""
    if duration_seconds <= 0:
        return 0
    return math.ceil(duration_seconds / 60)


class CallWebhookService:
    """Turns verified Retell events into call records and billing effects."""

    def __init__(
        self,
        agents: AgentRepository,
        calls: CallHistoryRepository,
        routing: RoutingService | None,
    ):
        self._agents = agents
        self._calls = calls
        self._routing = routing

    async def handle_event(self, event: RetellEvent) -> CallProcessingResult:
        if not isinstance(event, CallAnalyzedEvent):
            logger.info("Ignoring Retell event", retell_event=event.event)
            return CallProcessingResult(CallOutcome.IGNORED)
        return await self._handle_call_analyzed(event)

    async def _handle_call_analyzed(self, event: CallAnalyzedEvent) -> CallProcessingResult:
        call = event.call

        agent = await self._agents.get_by_retell_id(call.agent_id)
        if agent is None:
            logger.warning(
                "Call event for unknown agent",
                call_id=call.call_id,
                retell_agent_id=call.agent_id,
            )
            return CallProcessingResult(CallOutcome.UNKNOWN_AGENT)

        minutes = billable_minutes(call.duration_seconds)
        inserted, client = await self._calls.record_and_charge(
            client_id=agent.client_id,
            minutes=minutes,
            retell_call_id=call.call_id,
            retell_agent_id=call.agent_id,
            phone_number=call.from_number,
            transcript=call.transcript or "",
            call_duration_seconds=call.duration_seconds,
            call_status=call.call_status or "completed",
        )

        if inserted:
            logger.info(
                "Call recorded",
                call_id=call.call_id,
                client_id=agent.client_id,
                duration_seconds=call.duration_seconds,
                minutes_charged=minutes,
            )
            outcome = CallOutcome.RECORDED
        else:
            logger.info("Call already recorded", call_id=call.call_id)
            outcome = CallOutcome.DUPLICATE

        if client is None:
            logger.warning("Agent owner not found", client_id=agent.client_id)
            return CallProcessingResult(outcome, client_id=agent.client_id)

        # Also checked for redelivered calls
        result = CallProcessingResult(outcome, client_id=client.id)
        if not client.is_exhausted:
            return result

        if client.phone_status is PhoneStatus.INACTIVE:
            logger.info("Client already on fallback routing", client_id=client.id)
            return result

        if self._routing is None:
            raise ConfigurationError("Twilio integration is not configured")

        logger.warning(
            "Client out of minutes, switching to fallback",
            client_id=client.id,
            minutes_used=client.minutes_used,
            minutes_included=client.minutes_included,
        )
        result.suspension = await self._routing.suspend_client_numbers(client.id)
        return result
