"""Unit tests for CallWebhookService."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from agentline.core.exceptions import ConfigurationError
from agentline.domain.entities.events import parse_retell_event
from agentline.domain.entities.routing import PhoneStatus, RoutingResult
from agentline.domain.services.call_webhook_service import (
    CallOutcome,
    CallWebhookService,
    billable_minutes,
)
from agentline.infrastructure.database import repositories


def call_event(call_id: str = "call_1", agent_id: str = "agent_retell_1", seconds: float = 95.0):
    body = {
        "event": "call_analyzed",
        "call": {
            "call_id": call_id,
            "agent_id": agent_id,
            "from_number": "+15550009999",
            "to_number": "+15550000001",
            "transcript": "User: Hi\nAgent: Hello!",
            "call_status": "ended",
            "call_cost": {"total_duration_seconds": seconds},
        },
    }
    return parse_retell_event(json.dumps(body).encode())


@pytest.fixture
def mock_routing():
    routing = AsyncMock()
    routing.suspend_client_numbers.return_value = RoutingResult(success=1)
    return routing


@pytest.fixture
def service(agent_repo, call_repo, mock_routing):
    return CallWebhookService(agents=agent_repo, calls=call_repo, routing=mock_routing)


class TestBillableMinutes:
    @pytest.mark.parametrize(
        "seconds,expected",
        [(0, 0), (-5, 0), (1, 1), (60, 1), (61, 2), (95, 2), (600, 10)],
    )
    def test_rounds_up(self, seconds, expected):
        assert billable_minutes(seconds) == expected


class TestHandleEvent:
    """Test suite for CallWebhookService.handle_event."""

    async def test_other_events_are_ignored(self, service, call_repo, mock_routing):
        """Test non call_analyzed events have no side effects."""
        event = parse_retell_event(b'{"event": "call_started", "call": {"call_id": "c"}}')

        result = await service.handle_event(event)

        assert result.outcome is CallOutcome.IGNORED
        mock_routing.suspend_client_numbers.assert_not_awaited()

    async def test_unknown_agent_writes_nothing(self, service, call_repo, seed):
        """Test an event for an agent we do not know is acknowledged and dropped."""
        client = await seed.client()

        result = await service.handle_event(call_event(agent_id="agent_unknown"))

        assert result.outcome is CallOutcome.UNKNOWN_AGENT
        assert await call_repo.list_for_client(client.id) == []

    async def test_records_call_and_charges_minutes(
        self, service, call_repo, client_repo, seed, mock_routing
    ):
        client = await seed.client(minutes_included=100, minutes_used=10)
        await seed.agent(client.id)

        result = await service.handle_event(call_event(seconds=95))

        assert result.outcome is CallOutcome.RECORDED
        calls = await call_repo.list_for_client(client.id)
        assert len(calls) == 1
        assert calls[0].call_duration_seconds == 95
        assert calls[0].phone_number == "+15550009999"
        assert (await client_repo.get(client.id)).minutes_used == 12
        mock_routing.suspend_client_numbers.assert_not_awaited()

    async def test_exhausted_client_triggers_fallback(self, service, seed, mock_routing):
        """Test a call on a fully used balance switches numbers to fallback."""
        client = await seed.client(minutes_included=100, minutes_used=100)
        await seed.agent(client.id)

        result = await service.handle_event(call_event())

        assert result.outcome is CallOutcome.RECORDED
        mock_routing.suspend_client_numbers.assert_awaited_once_with(client.id)
        assert result.suspension.success == 1

    async def test_crossing_the_limit_triggers_fallback(self, service, seed, mock_routing):
        client = await seed.client(minutes_included=100, minutes_used=99)
        await seed.agent(client.id)

        await service.handle_event(call_event(seconds=30))

        mock_routing.suspend_client_numbers.assert_awaited_once_with(client.id)

    async def test_already_inactive_client_is_not_suspended_again(
        self, service, seed, mock_routing
    ):
        """Test fallback fires once per exhaustion, not on every later call."""
        client = await seed.client(
            minutes_included=100, minutes_used=120, phone_status=PhoneStatus.INACTIVE
        )
        await seed.agent(client.id)

        await service.handle_event(call_event())

        mock_routing.suspend_client_numbers.assert_not_awaited()

    async def test_redelivery_is_a_noop(self, service, client_repo, seed, mock_routing):
        """Test the same call id charges minutes only once."""
        client = await seed.client(minutes_included=100, minutes_used=0)
        await seed.agent(client.id)

        first = await service.handle_event(call_event(seconds=120))
        second = await service.handle_event(call_event(seconds=120))

        assert first.outcome is CallOutcome.RECORDED
        assert second.outcome is CallOutcome.DUPLICATE
        assert (await client_repo.get(client.id)).minutes_used == 2

    async def test_zero_length_call_is_recorded_without_charge(
        self, service, client_repo, call_repo, seed
    ):
        client = await seed.client(minutes_included=100, minutes_used=5)
        await seed.agent(client.id)

        await service.handle_event(call_event(seconds=0))

        assert (await client_repo.get(client.id)).minutes_used == 5
        assert len(await call_repo.list_for_client(client.id)) == 1

    async def test_routing_errors_propagate(self, service, seed, mock_routing):
        """Test an unexpected orchestrator error reaches the caller for a retry."""
        client = await seed.client(minutes_included=1, minutes_used=1)
        await seed.agent(client.id)
        mock_routing.suspend_client_numbers.side_effect = RuntimeError("db gone")

        with pytest.raises(RuntimeError):
            await service.handle_event(call_event())

    async def test_fractional_seconds_round_up(self, service, call_repo, client_repo, seed):
        client = await seed.client(minutes_included=100, minutes_used=0)
        await seed.agent(client.id)

        await service.handle_event(call_event(seconds=60.5))

        assert (await client_repo.get(client.id)).minutes_used == 2
        assert (await call_repo.list_for_client(client.id))[0].call_duration_seconds == 61

    async def test_fallback_without_telephony_raises(self, agent_repo, call_repo, seed):
        """Test calls are still recorded while Twilio is not configured."""
        client = await seed.client(minutes_included=100, minutes_used=100)
        await seed.agent(client.id)
        service = CallWebhookService(agents=agent_repo, calls=call_repo, routing=None)

        with pytest.raises(ConfigurationError):
            await service.handle_event(call_event())

        assert len(await call_repo.list_for_client(client.id)) == 1

    async def test_recording_without_telephony(self, agent_repo, call_repo, seed):
        client = await seed.client(minutes_included=100, minutes_used=0)
        await seed.agent(client.id)
        service = CallWebhookService(agents=agent_repo, calls=call_repo, routing=None)

        result = await service.handle_event(call_event())

        assert result.outcome is CallOutcome.RECORDED


class TestRedelivery:
    """Test suite for events Retell sends again after a 5xx."""

    async def test_charge_failure_is_charged_on_redelivery(
        self, service, call_repo, client_repo, seed
    ):
        """Test a failed charge leaves no call row, so the retry bills it."""
        client = await seed.client(minutes_included=100, minutes_used=0)
        await seed.agent(client.id)
        charge = repositories._charge
        attempts = []

        async def flaky_charge(session, client_id, minutes):
            if not attempts:
                attempts.append(client_id)
                raise RuntimeError("connection reset")
            return await charge(session, client_id, minutes)

        with patch.object(repositories, "_charge", flaky_charge):
            with pytest.raises(RuntimeError):
                await service.handle_event(call_event(seconds=600))
            second = await service.handle_event(call_event(seconds=600))

        assert second.outcome is CallOutcome.RECORDED
        assert (await client_repo.get(client.id)).minutes_used == 10
        assert len(await call_repo.list_for_client(client.id)) == 1

    async def test_failed_fallback_is_retried_on_redelivery(self, service, seed, mock_routing):
        """Test a duplicate still switches an exhausted, active client."""
        client = await seed.client(minutes_included=1, minutes_used=0)
        await seed.agent(client.id)
        mock_routing.suspend_client_numbers.side_effect = [
            RuntimeError("db gone"),
            RoutingResult(success=1),
        ]

        with pytest.raises(RuntimeError):
            await service.handle_event(call_event(seconds=600))
        second = await service.handle_event(call_event(seconds=600))

        assert second.outcome is CallOutcome.DUPLICATE
        assert second.suspension.success == 1
        assert mock_routing.suspend_client_numbers.await_count == 2

    async def test_duplicate_for_inactive_client_does_nothing(
        self, service, client_repo, seed, mock_routing
    ):
        client = await seed.client(minutes_included=1, minutes_used=0)
        await seed.agent(client.id)
        await service.handle_event(call_event(seconds=600))
        await client_repo.set_phone_status(client.id, PhoneStatus.INACTIVE)

        result = await service.handle_event(call_event(seconds=600))

        assert result.outcome is CallOutcome.DUPLICATE
        assert (await client_repo.get(client.id)).minutes_used == 10
        mock_routing.suspend_client_numbers.assert_awaited_once_with(client.id)


class TestScenarioExhaustion:
    """End-to-end over the real orchestrator with a mocked carrier."""

    async def test_call_on_exhausted_balance_suspends_numbers(
        self, agent_repo, call_repo, client_repo, routing_service, mock_telephony, seed
    ):
        client = await seed.client(minutes_included=100, minutes_used=100)
        agent = await seed.agent(client.id)
        await seed.phone_number(client.id, "+15550000001", "PN1", agent_id=agent.id)
        await seed.phone_number(client.id, "+15550000002", "PN2", agent_id=agent.id)
        service = CallWebhookService(agent_repo, call_repo, routing_service)

        result = await service.handle_event(call_event())

        assert result.suspension.success == 2
        assert (await client_repo.get(client.id)).phone_status is PhoneStatus.INACTIVE
        assert len(await call_repo.list_for_client(client.id)) == 1
        assert mock_telephony.detach_from_trunk.await_count == 2
