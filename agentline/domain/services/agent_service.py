"""Voice agent provisioning on Retell."""

from typing import Sequence

from agentline.core.exceptions import AuthorizationError, ExternalServiceError, NotFoundError
from agentline.core.logging import get_logger
from agentline.infrastructure.database.models import Agent
from agentline.infrastructure.database.repositories import AgentRepository
from agentline.infrastructure.retell.client import RetellClient

logger = get_logger(__name__)


class AgentService:
    def __init__(
        self,
        retell: RetellClient,
        agents: AgentRepository,
        *,
        webhook_url: str,
        default_model: str,
        default_voice: str,
        default_language: str,
        default_prompt: str,
    ):
        self._retell = retell
        self._agents = agents
        self._webhook_url = webhook_url
        self._default_model = default_model
        self._default_voice = default_voice
        self._default_language = default_language
        self._default_prompt = default_prompt

    async def list_agents(self, client_id: str) -> Sequence[Agent]:
        return await self._agents.list_for_client(client_id)

    async def create_agent(
        self,
        client_id: str,
        agent_name: str,
        prompt: str | None = None,
        voice: str | None = None,
        language: str | None = None,
        retell_llm_id: str | None = None,
    ) -> Agent:
        """Create the LLM config and agent on Retell, then store the agent.

        The Retell agent is deleted again if the database insert fails.
        """
        voice = voice or self._default_voice
        language = language or self._default_language

        llm_id = retell_llm_id
        if not llm_id:
            llm = await self._retell.create_llm(
                general_prompt=prompt or self._default_prompt,
                model=self._default_model,
            )
            llm_id = llm["llm_id"]
            logger.info("Created Retell LLM", llm_id=llm_id)

        remote = await self._retell.create_agent(
            agent_name=agent_name,
            voice_id=voice,
            language=language,
            llm_id=llm_id,
            webhook_url=self._webhook_url,
        )
        retell_agent_id = remote["agent_id"]
        llm_id = (remote.get("response_engine") or {}).get("llm_id") or llm_id
        logger.info("Created Retell agent", retell_agent_id=retell_agent_id, client_id=client_id)

        try:
            return await self._agents.create(
                client_id=client_id,
                agent_name=agent_name,
                retell_agent_id=retell_agent_id,
                retell_llm_id=llm_id,
                prompt=prompt,
                voice=voice,
                language=language,
                transfer_calls=[],
            )
        except Exception:
            logger.error("Failed to store agent, rolling back", retell_agent_id=retell_agent_id)
            try:
                await self._retell.delete_agent(retell_agent_id)
            except ExternalServiceError as e:
                logger.error("Rollback of Retell agent failed", retell_agent_id=retell_agent_id, error=str(e))
            raise

    async def update_agent(
        self,
        client_id: str,
        agent_id: str,
        *,
        agent_name: str | None = None,
        voice: str | None = None,
        language: str | None = None,
    ) -> Agent:
        """Update agent settings on Retell and publish them."""
        agent = await self.get_owned(client_id, agent_id)

        fields = {}
        if voice:
            fields["voice_id"] = voice
        if agent_name:
            fields["agent_name"] = agent_name
        if language:
            fields["language"] = language
        if not fields:
            return agent

        await self._retell.update_agent(agent.retell_agent_id, **fields)

        try:
            await self._retell.publish_agent(agent.retell_agent_id)
        except ExternalServiceError as e:
            logger.warning("Agent updated but not published", retell_agent_id=agent.retell_agent_id, error=str(e))

        updates = {}
        if voice:
            updates["voice"] = voice
        if agent_name:
            updates["agent_name"] = agent_name
        if language:
            updates["language"] = language
        await self._agents.update(agent.id, **updates)
        for key, value in updates.items():
            setattr(agent, key, value)
        return agent

    async def update_prompt(self, client_id: str, agent_id: str, prompt: str) -> Agent:
        agent = await self.get_owned(client_id, agent_id)
        if not agent.retell_llm_id:
            raise NotFoundError("Agent has no LLM configuration")

        await self._retell.update_llm(agent.retell_llm_id, general_prompt=prompt)
        await self._agents.update(agent.id, prompt=prompt)
        agent.prompt = prompt
        return agent

    async def delete_agent(self, client_id: str, agent_id: str) -> None:
        """Delete the agent; its call history goes with it."""
        agent = await self._agents.get(agent_id)
        if agent is None:
            raise NotFoundError("Agent not found")
        if agent.client_id != client_id:
            raise AuthorizationError("Agent belongs to another client")

        try:
            await self._retell.delete_agent(agent.retell_agent_id)
        except ExternalServiceError as e:
            logger.warning("Retell agent delete failed", retell_agent_id=agent.retell_agent_id, error=str(e))

        await self._agents.delete(agent.id)
        logger.info("Deleted agent", agent_id=agent.id, client_id=client_id)

    async def get_owned(self, client_id: str, agent_id: str) -> Agent:
        agent = await self._agents.get(agent_id)
        if agent is None or agent.client_id != client_id:
            raise NotFoundError("Agent not found")
        return agent
