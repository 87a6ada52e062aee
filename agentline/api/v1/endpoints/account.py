"""Account endpoints: minute balance and call history."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from agentline.api.deps import get_call_history_repository, get_client_repository
from agentline.api.v1.schemas.account import (
    CallHistoryItem,
    CallHistoryResponse,
    MinutesResponse,
)
from agentline.core.auth import CurrentClient
from agentline.core.exceptions import NotFoundError
from agentline.infrastructure.database.repositories import (
    CallHistoryRepository,
    ClientRepository,
)

router = APIRouter()


@router.get("/minutes", response_model=MinutesResponse)
async def get_minutes(
    client: CurrentClient,
    clients: Annotated[ClientRepository, Depends(get_client_repository)],
) -> MinutesResponse:
    record = await clients.get(client["id"])
    if record is None:
        raise NotFoundError("Client not found")
    return MinutesResponse(
        minutes_included=record.minutes_included,
        minutes_used=record.minutes_used,
        minutes_remaining=max(record.minutes_remaining, 0),
        phone_status=record.phone_status.value,
    )


@router.get("/calls", response_model=CallHistoryResponse)
async def list_calls(
    client: CurrentClient,
    calls: Annotated[CallHistoryRepository, Depends(get_call_history_repository)],
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> CallHistoryResponse:
    records = await calls.list_for_client(client["id"], limit=limit, offset=offset)
    return CallHistoryResponse(
        calls=[CallHistoryItem.model_validate(r) for r in records],
        limit=limit,
        offset=offset,
    )
