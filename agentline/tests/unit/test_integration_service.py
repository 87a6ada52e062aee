"""Unit tests for IntegrationService and the tool merge helpers."""

import pytest

from agentline.domain.entities.integrations import (
    CalComIntegration,
    TransferCallIntegration,
    merge_tools,
    remove_tools,
)
from agentline.domain.services.agent_service import AgentService
from agentline.domain.services.integration_service import IntegrationService


def cal_com() -> CalComIntegration:
    return CalComIntegration(type="cal_com", cal_api_key="cal_live_x", event_type_id=42, timezone="UTC")


def transfer(name: str = "transfer_to_sales") -> TransferCallIntegration:
    return TransferCallIntegration(
        type="transfer_call",
        phone_number="+15550002222",
        transfer_description="Transfer when the caller asks for sales",
        function_name=name,
    )


class TestToolHelpers:
    def test_cal_com_replaces_previous_calendar_tools(self):
        tools = merge_tools([], cal_com())
        tools = merge_tools(tools, cal_com())

        assert [t["type"] for t in tools] == ["check_availability_cal", "book_appointment_cal"]

    def test_transfer_replaced_by_name(self):
        tools = merge_tools([], transfer())
        tools = merge_tools(tools, transfer())
        tools = merge_tools(tools, transfer("transfer_to_support"))

        assert sorted(t["name"] for t in tools) == ["transfer_to_sales", "transfer_to_support"]

    def test_remove_named_transfer_keeps_others(self):
        tools = merge_tools(merge_tools(cal_com_tools(), transfer()), transfer("transfer_to_support"))

        remaining = remove_tools(tools, "transfer_call", "transfer_to_sales")

        assert [t["name"] for t in remaining if t["type"] == "transfer_call"] == ["transfer_to_support"]
        assert len(remaining) == 3

    def test_remove_all_transfers(self):
        tools = merge_tools(cal_com_tools(), transfer())

        assert len(remove_tools(tools, "transfer_call")) == 2


def cal_com_tools() -> list:
    return merge_tools([], cal_com())


class TestIntegrationService:
    """Test suite for IntegrationService."""

    @pytest.fixture
    def service(self, mock_retell, agent_repo):
        agent_service = AgentService(
            mock_retell,
            agent_repo,
            webhook_url="https://app.test/api/v1/webhooks/retell",
            default_model="gpt-5-mini",
            default_voice="11labs-Adrian",
            default_language="en-US",
            default_prompt="Be helpful.",
        )
        return IntegrationService(mock_retell, agent_repo, agent_service)

    async def test_add_cal_com(self, service, mock_retell, agent_repo, seed):
        client = await seed.client()
        agent = await seed.agent(client.id)

        count = await service.add(client.id, agent.id, cal_com())

        assert count == 2
        mock_retell.update_llm.assert_awaited_once()
        assert mock_retell.update_llm.await_args.args == ("llm_1",)
        assert (await agent_repo.get(agent.id)).cal_com == {"event_type_id": 42, "timezone": "UTC"}

    async def test_add_transfer_records_destination(self, service, agent_repo, seed):
        client = await seed.client()
        agent = await seed.agent(client.id)

        await service.add(client.id, agent.id, transfer())

        stored = await agent_repo.get(agent.id)
        assert stored.transfer_calls == [
            {
                "name": "transfer_to_sales",
                "phone_number": "+15550002222",
                "description": "Transfer when the caller asks for sales",
            }
        ]

    async def test_remove_cal_com(self, service, mock_retell, agent_repo, seed):
        client = await seed.client()
        agent = await seed.agent(client.id)
        mock_retell.get_llm.return_value = {"general_tools": cal_com_tools()}

        count = await service.remove(client.id, agent.id, "cal_com")

        assert count == 0
        assert (await agent_repo.get(agent.id)).cal_com is None
