"""Phone number endpoints."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from agentline.api.deps import get_phone_number_service
from agentline.api.v1.schemas.common import SuccessResponse
from agentline.api.v1.schemas.phone_numbers import (
    AvailablePhoneNumber,
    CheckoutResponse,
    LinkRequest,
    PhoneNumberListResponse,
    PhoneNumberResponse,
    PhoneNumberSearchResponse,
    PurchaseRequest,
)
from agentline.core.auth import CurrentClient
from agentline.domain.services.phone_number_service import PhoneNumberService

router = APIRouter()

Service = Annotated[PhoneNumberService, Depends(get_phone_number_service)]


@router.get("", response_model=PhoneNumberListResponse)
async def list_phone_numbers(client: CurrentClient, service: Service) -> PhoneNumberListResponse:
    numbers = await service.list_numbers(client["id"])
    return PhoneNumberListResponse(
        phone_numbers=[PhoneNumberResponse.model_validate(n) for n in numbers],
        total=len(numbers),
    )


@router.get("/search", response_model=PhoneNumberSearchResponse)
async def search_phone_numbers(
    client: CurrentClient,
    service: Service,
    country: str = Query(..., min_length=2, max_length=2, description="ISO country code"),
    area_code: Optional[str] = Query(None, description="Required for US and CA"),
) -> PhoneNumberSearchResponse:
    numbers = await service.search(country, area_code)
    return PhoneNumberSearchResponse(
        numbers=[AvailablePhoneNumber.model_validate(n) for n in numbers],
        total=len(numbers),
    )


@router.post("/purchase", response_model=CheckoutResponse)
async def purchase_phone_number(
    request: PurchaseRequest, client: CurrentClient, service: Service
) -> CheckoutResponse:
    """Start checkout; the number is provisioned by the Stripe webhook."""
    session = await service.create_purchase_checkout(
        client["id"], client.get("email"), request.phone_number
    )
    return CheckoutResponse(**session)


@router.post("/{phone_number_id}/link", response_model=PhoneNumberResponse)
async def link_phone_number(
    phone_number_id: str, request: LinkRequest, client: CurrentClient, service: Service
) -> PhoneNumberResponse:
    number = await service.link(client["id"], phone_number_id, request.agent_id)
    return PhoneNumberResponse.model_validate(number)


@router.delete("/{phone_number_id}", response_model=SuccessResponse)
async def release_phone_number(
    phone_number_id: str, client: CurrentClient, service: Service
) -> SuccessResponse:
    await service.release(client["id"], phone_number_id)
    return SuccessResponse(message="Phone number released")
