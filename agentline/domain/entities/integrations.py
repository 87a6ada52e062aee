"""Agent integration payloads and the Retell tools they produce."""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field

CAL_CHECK_AVAILABILITY = "check_availability_cal"
CAL_BOOK_APPOINTMENT = "book_appointment_cal"
TRANSFER_CALL = "transfer_call"

CAL_TOOL_TYPES = frozenset({CAL_CHECK_AVAILABILITY, CAL_BOOK_APPOINTMENT})


class CalComIntegration(BaseModel):
    """Calendar booking through Cal.com."""

    type: Literal["cal_com"]
    cal_api_key: str = Field(..., min_length=1, description="Cal.com API key")
    event_type_id: int = Field(..., gt=0, description="Cal.com event type ID")
    timezone: Optional[str] = None


class TransferCallIntegration(BaseModel):
    """Cold transfer of the caller to a fixed number."""

    type: Literal["transfer_call"]
    phone_number: str = Field(..., min_length=1)
    transfer_description: str = Field(..., min_length=1)
    function_name: str = Field(..., pattern=r"^[a-zA-Z0-9_-]+$")


Integration = Annotated[
    Union[CalComIntegration, TransferCallIntegration],
    Field(discriminator="type"),
]


def _cal_tools(integration: CalComIntegration) -> list[dict[str, Any]]:
    common: dict[str, Any] = {
        "cal_api_key": integration.cal_api_key,
        "event_type_id": integration.event_type_id,
    }
    if integration.timezone:
        common["timezone"] = integration.timezone
    return [
        {
            "type": CAL_CHECK_AVAILABILITY,
            "name": "check_calendar_availability",
            "description": (
                "Check available appointment slots on the calendar. Use this "
                "when the caller wants to know what times are available."
            ),
            **common,
        },
        {
            "type": CAL_BOOK_APPOINTMENT,
            "name": "book_calendar_appointment",
            "description": (
                "Book an appointment on the calendar. Use this after "
                "confirming the time slot with the caller."
            ),
            **common,
        },
    ]


def _transfer_tool(integration: TransferCallIntegration) -> dict[str, Any]:
    return {
        "type": TRANSFER_CALL,
        "name": integration.function_name,
        "description": integration.transfer_description,
        "transfer_destination": {
            "type": "predefined",
            "number": integration.phone_number,
        },
        "transfer_option": {
            "type": "cold_transfer",
            "show_transferee_as_caller": True,
        },
    }


def merge_tools(
    existing: list[dict[str, Any]],
    integration: CalComIntegration | TransferCallIntegration,
) -> list[dict[str, Any]]:
    """Return the LLM tool list with `integration` applied.

    Calendar tools replace any previous calendar tools; a transfer tool
    replaces a transfer tool with the same name.
    """
    if isinstance(integration, CalComIntegration):
        kept = [t for t in existing if t.get("type") not in CAL_TOOL_TYPES]
        return kept + _cal_tools(integration)

    kept = [
        t
        for t in existing
        if not (t.get("type") == TRANSFER_CALL and t.get("name") == integration.function_name)
    ]
    return kept + [_transfer_tool(integration)]


def remove_tools(
    existing: list[dict[str, Any]],
    tool_type: Literal["cal_com", "transfer_call"],
    tool_name: str | None = None,
) -> list[dict[str, Any]]:
    """Return the LLM tool list without the given integration's tools."""
    if tool_type == "cal_com":
        return [t for t in existing if t.get("type") not in CAL_TOOL_TYPES]
    if tool_name:
        return [
            t
            for t in existing
            if not (t.get("type") == TRANSFER_CALL and t.get("name") == tool_name)
        ]
    return [t for t in existing if t.get("type") != TRANSFER_CALL]
