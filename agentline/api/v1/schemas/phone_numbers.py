"""Pydantic schemas for phone number endpoints."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class AvailablePhoneNumber(BaseModel):
    phone_number: str
    friendly_name: Optional[str] = None
    locality: Optional[str] = None
    region: Optional[str] = None
    iso_country: Optional[str] = None
    capabilities: Optional[dict[str, Any]] = None


class PhoneNumberSearchResponse(BaseModel):
    numbers: list[AvailablePhoneNumber]
    total: int


class PurchaseRequest(BaseModel):
    phone_number: str = Field(..., min_length=4, description="E.164 number to buy")


class CheckoutResponse(BaseModel):
    id: str
    url: Optional[str] = None


class LinkRequest(BaseModel):
    agent_id: Optional[str] = Field(None, description="Agent to route to; null unassigns")


class PhoneNumberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    phone_number: str
    agent_id: Optional[str] = None
    monthly_cost: float
    created_at: Optional[datetime] = None


class PhoneNumberListResponse(BaseModel):
    phone_numbers: list[PhoneNumberResponse]
    total: int
