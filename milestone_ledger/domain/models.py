"""
Domain models for the Milestone Ledger.

Defines the milestone record, its status enumeration, the per-call context
supplied by the host, and the goal progress summary returned by aggregation.
Field constraints double as the store's validation rules.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from pydantic import BaseModel, Field, StrictInt

from milestone_ledger.errors import InvalidInput

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
# Largest value every backend can store (signed 64-bit).
MAX_INTEGER = 2**63 - 1


class MilestoneStatus(IntEnum):
    """Stored as a small ordinal; any value may be written by an update."""

    PENDING = 0
    IN_PROGRESS = 1
    COMPLETED = 2
    VERIFIED = 3


def parse_status(value: str | int | MilestoneStatus) -> MilestoneStatus:
    """
    Resolve a status from its ordinal or its name ("in_progress", "InProgress", ...).
    """
    if isinstance(value, MilestoneStatus):
        return value
    if isinstance(value, bool):
        raise InvalidInput(f"Unknown status {value!r}", field="status")
    if isinstance(value, int):
        try:
            return MilestoneStatus(value)
        except ValueError:
            raise InvalidInput(f"Unknown status ordinal {value}", field="status") from None

    text = str(value).strip()
    if text.isdigit():
        return parse_status(int(text))
    key = text.replace("-", "").replace("_", "").replace(" ", "").lower()
    for status in MilestoneStatus:
        if status.name.replace("_", "").lower() == key:
            return status
    raise InvalidInput(f"Unknown status '{value}'", field="status")


class Milestone(BaseModel):
    """
    A single milestone owned by one identity.
    """

    owner: str = Field(..., min_length=1, description="Owning identity handle.")
    record_id: StrictInt = Field(
        ..., ge=1, le=MAX_INTEGER, description="Id unique within the owner's namespace."
    )
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = Field(..., min_length=1, max_length=DESCRIPTION_MAX_LENGTH)
    goal_id: Optional[StrictInt] = Field(
        None, ge=0, le=MAX_INTEGER, description="Associated goal, if any."
    )
    status: MilestoneStatus = Field(MilestoneStatus.PENDING)
    # Unsigned but not clamped to 100: callers are trusted with the scale.
    progress_percentage: StrictInt = Field(0, ge=0, le=MAX_INTEGER)
    target_date: StrictInt = Field(
        ..., ge=0, le=MAX_INTEGER, description="Ledger clock value the milestone targets."
    )
    created_at: StrictInt = Field(..., ge=0, le=MAX_INTEGER)
    updated_at: StrictInt = Field(..., ge=0, le=MAX_INTEGER)

    model_config = {"frozen": True}


class GoalProgress(BaseModel):
    """
    Result of a bounded aggregation over one owner's records for one goal.
    """

    owner: str
    goal_id: int
    member_count: int = 0
    total_progress: int = 0
    average_progress: int = 0
    slots: int = Field(0, description="Size of the fixed candidate id range.")
    probed: int = Field(0, description="Slots within the owner's live id range.")

    model_config = {"frozen": True}


@dataclass(frozen=True)
class CallContext:
    """
    Host-supplied facts about the current call: the verified caller and the ledger clock.
    """

    caller: str
    now: int

    def __post_init__(self) -> None:
        if not isinstance(self.caller, str) or not self.caller:
            raise InvalidInput("Caller identity must be a non-empty string", field="caller")
        if isinstance(self.now, bool) or not isinstance(self.now, int) or self.now < 0:
            raise InvalidInput("Ledger clock must be a non-negative integer", field="now")


class _Unset:
    """Marker type for omitted optional fields in partial updates."""

    _instance: Optional["_Unset"] = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


__all__ = [
    "TITLE_MAX_LENGTH",
    "DESCRIPTION_MAX_LENGTH",
    "MAX_INTEGER",
    "MilestoneStatus",
    "parse_status",
    "Milestone",
    "GoalProgress",
    "CallContext",
    "UNSET",
]
