"""Agent management endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from agentline.api.deps import get_agent_service
from agentline.api.v1.schemas.agents import (
    AgentCreateRequest,
    AgentListResponse,
    AgentResponse,
    AgentUpdateRequest,
    PromptUpdateRequest,
)
from agentline.api.v1.schemas.common import SuccessResponse
from agentline.core.auth import CurrentClient
from agentline.domain.services.agent_service import AgentService

router = APIRouter()

Service = Annotated[AgentService, Depends(get_agent_service)]


@router.get("", response_model=AgentListResponse)
async def list_agents(client: CurrentClient, service: Service) -> AgentListResponse:
    agents = await service.list_agents(client["id"])
    return AgentListResponse(
        agents=[AgentResponse.model_validate(a) for a in agents],
        total=len(agents),
    )


@router.post("", response_model=AgentResponse, status_code=status.HTTP_201_CREATED)
async def create_agent(
    request: AgentCreateRequest, client: CurrentClient, service: Service
) -> AgentResponse:
    """Create a voice agent (LLM config + agent) on Retell."""
    agent = await service.create_agent(
        client["id"],
        agent_name=request.agent_name,
        prompt=request.prompt,
        voice=request.voice,
        language=request.language,
        retell_llm_id=request.retell_llm_id,
    )
    return AgentResponse.model_validate(agent)


@router.patch("/{agent_id}", response_model=AgentResponse)
async def update_agent(
    agent_id: str, request: AgentUpdateRequest, client: CurrentClient, service: Service
) -> AgentResponse:
    """Change voice, name or language and publish the agent."""
    agent = await service.update_agent(
        client["id"],
        agent_id,
        agent_name=request.agent_name,
        voice=request.voice,
        language=request.language,
    )
    return AgentResponse.model_validate(agent)


@router.put("/{agent_id}/prompt", response_model=AgentResponse)
async def update_prompt(
    agent_id: str, request: PromptUpdateRequest, client: CurrentClient, service: Service
) -> AgentResponse:
    agent = await service.update_prompt(client["id"], agent_id, request.prompt)
    return AgentResponse.model_validate(agent)


@router.delete("/{agent_id}", response_model=SuccessResponse)
async def delete_agent(agent_id: str, client: CurrentClient, service: Service) -> SuccessResponse:
    """Delete an agent and its call history."""
    await service.delete_agent(client["id"], agent_id)
    return SuccessResponse(message="Agent deleted")
