"""Common Pydantic schemas."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="healthy or unhealthy")
    version: str
    scheduler: dict[str, Any] = Field(default_factory=dict)


class SuccessResponse(BaseModel):
    """Generic success response."""

    status: str = Field("success")
    message: Optional[str] = None
    data: Optional[dict[str, Any]] = None
