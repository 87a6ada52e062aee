"""Pydantic schemas for integration endpoints."""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from agentline.domain.entities.integrations import Integration


class AddIntegrationRequest(BaseModel):
    agent_id: str = Field(..., description="Agent ID")
    integration: Integration


class RemoveToolRequest(BaseModel):
    agent_id: str = Field(..., description="Agent ID")
    tool_type: Literal["cal_com", "transfer_call"]
    tool_name: Optional[str] = Field(None, description="Transfer tool to remove; all if omitted")


class IntegrationResponse(BaseModel):
    success: bool = True
    message: str
    tools_count: int
