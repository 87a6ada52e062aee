"""Pydantic schemas for account endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class MinutesResponse(BaseModel):
    minutes_included: int
    minutes_used: int
    minutes_remaining: int
    phone_status: str


class CallHistoryItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    retell_call_id: str
    retell_agent_id: str
    phone_number: Optional[str] = None
    transcript: str
    call_duration_seconds: int
    call_status: str
    created_at: Optional[datetime] = None


class CallHistoryResponse(BaseModel):
    calls: list[CallHistoryItem]
    limit: int
    offset: int
