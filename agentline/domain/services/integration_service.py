"""Calendar and call-transfer tools on an agent's Retell LLM."""

from typing import Any, Literal

from agentline.core.exceptions import NotFoundError
from agentline.core.logging import get_logger
from agentline.domain.entities.integrations import (
    CalComIntegration,
    TransferCallIntegration,
    merge_tools,
    remove_tools,
)
from agentline.domain.services.agent_service import AgentService
from agentline.infrastructure.database.repositories import AgentRepository
from agentline.infrastructure.retell.client import RetellClient

logger = get_logger(__name__)


class IntegrationService:
    def __init__(self, retell: RetellClient, agents: AgentRepository, agent_service: AgentService):
        self._retell = retell
        self._agents = agents
        self._agent_service = agent_service

    async def add(
        self,
        client_id: str,
        agent_id: str,
        integration: CalComIntegration | TransferCallIntegration,
    ) -> int:
        """Apply an integration to the agent's LLM tools.

        Returns:
            Number of tools on the LLM afterwards
        """
        agent = await self._agent_service.get_owned(client_id, agent_id)
        llm_id = self._llm_id(agent.retell_llm_id)

        llm = await self._retell.get_llm(llm_id)
        tools = merge_tools(llm.get("general_tools") or [], integration)
        await self._retell.update_llm(llm_id, general_tools=tools)

        if isinstance(integration, CalComIntegration):
            await self._agents.update(
                agent.id,
                cal_com={"event_type_id": integration.event_type_id, "timezone": integration.timezone},
            )
        else:
            transfers = [
                t for t in (agent.transfer_calls or []) if t.get("name") != integration.function_name
            ]
            transfers.append(
                {
                    "name": integration.function_name,
                    "phone_number": integration.phone_number,
                    "description": integration.transfer_description,
                }
            )
            await self._agents.update(agent.id, transfer_calls=transfers)

        logger.info(
            "Integration added",
            agent_id=agent.id,
            integration=integration.type,
            tools_count=len(tools),
        )
        return len(tools)

    async def remove(
        self,
        client_id: str,
        agent_id: str,
        tool_type: Literal["cal_com", "transfer_call"],
        tool_name: str | None = None,
    ) -> int:
        """Remove an integration's tools.

        Returns:
            Number of tools remaining on the LLM
        """
        agent = await self._agent_service.get_owned(client_id, agent_id)
        llm_id = self._llm_id(agent.retell_llm_id)

        llm = await self._retell.get_llm(llm_id)
        tools = remove_tools(llm.get("general_tools") or [], tool_type, tool_name)
        await self._retell.update_llm(llm_id, general_tools=tools)

        updates: dict[str, Any] = {}
        if tool_type == "cal_com":
            updates["cal_com"] = None
        elif tool_name:
            updates["transfer_calls"] = [
                t for t in (agent.transfer_calls or []) if t.get("name") != tool_name
            ]
        else:
            updates["transfer_calls"] = []
        await self._agents.update(agent.id, **updates)

        logger.info("Integration removed", agent_id=agent.id, tool_type=tool_type, tool_name=tool_name)
        return len(tools)

    @staticmethod
    def _llm_id(llm_id: str | None) -> str:
        if not llm_id:
            raise NotFoundError("Agent has no LLM configuration")
        return llm_id
