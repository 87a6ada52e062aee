"""Agent integration endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from agentline.api.deps import get_integration_service
from agentline.api.v1.schemas.integrations import (
    AddIntegrationRequest,
    IntegrationResponse,
    RemoveToolRequest,
)
from agentline.core.auth import CurrentClient
from agentline.domain.entities.integrations import CalComIntegration
from agentline.domain.services.integration_service import IntegrationService

router = APIRouter()

Service = Annotated[IntegrationService, Depends(get_integration_service)]


@router.post("/tools", response_model=IntegrationResponse)
async def add_integration(
    request: AddIntegrationRequest, client: CurrentClient, service: Service
) -> IntegrationResponse:
    tools_count = await service.add(client["id"], request.agent_id, request.integration)
    integration = request.integration
    if isinstance(integration, CalComIntegration):
        message = "Cal.com integration added"
    else:
        message = f"Transfer call to {integration.phone_number} added"
    return IntegrationResponse(message=message, tools_count=tools_count)


@router.post("/tools/remove", response_model=IntegrationResponse)
async def remove_integration(
    request: RemoveToolRequest, client: CurrentClient, service: Service
) -> IntegrationResponse:
    tools_count = await service.remove(
        client["id"], request.agent_id, request.tool_type, request.tool_name
    )
    if request.tool_type == "cal_com":
        message = "Cal.com integration removed"
    else:
        suffix = f" {request.tool_name}" if request.tool_name else "s"
        message = f"Transfer call{suffix} removed"
    return IntegrationResponse(message=message, tools_count=tools_count)
