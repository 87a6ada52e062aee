"""Phone routing state and orchestration results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PhoneStatus(str, Enum):
    """Client-level routing flag for all owned numbers."""

    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass
class RoutingResult:
    """Outcome of a fan-out routing change across a client's numbers.

    Partial failure is reported here rather than raised.
    """

    success: int = 0
    failed: int = 0
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.success + self.failed

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "failed": self.failed,
            "errors": dict(self.errors),
        }
