"""Pydantic schemas for webhook endpoints."""

from typing import Optional

from pydantic import BaseModel, Field


class StripeWebhookResponse(BaseModel):
    received: bool = True


class JobResultItem(BaseModel):
    job_id: int
    status: str = Field(..., description="completed, pending (will retry) or failed")
    error: Optional[str] = None


class ProcessQueueResponse(BaseModel):
    """Summary of one job queue worker pass."""

    processed: int = Field(..., description="Jobs attempted in this pass")
    failed: int = Field(0, description="Attempts that raised an error")
    results: list[JobResultItem] = Field(default_factory=list)
    message: Optional[str] = None
