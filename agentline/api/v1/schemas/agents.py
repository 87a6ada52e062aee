"""Pydantic schemas for agent endpoints."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class AgentCreateRequest(BaseModel):
    agent_name: str = Field(..., min_length=1, max_length=255)
    prompt: Optional[str] = Field(None, max_length=5000)
    voice: Optional[str] = Field(None, description="Retell voice ID, e.g. 11labs-Adrian")
    language: Optional[str] = Field(None, description="BCP-47 language, e.g. en-US")
    retell_llm_id: Optional[str] = Field(None, description="Reuse an existing LLM config")


class AgentUpdateRequest(BaseModel):
    agent_name: Optional[str] = Field(None, min_length=1, max_length=255)
    voice: Optional[str] = None
    language: Optional[str] = None


class PromptUpdateRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=5000)


class AgentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    agent_name: str
    retell_agent_id: str
    retell_llm_id: Optional[str] = None
    voice: str
    language: str
    prompt: Optional[str] = None
    transfer_calls: list[dict[str, Any]] = Field(default_factory=list)
    cal_com: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None


class AgentListResponse(BaseModel):
    agents: list[AgentResponse]
    total: int
