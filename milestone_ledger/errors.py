"""
Error hierarchy for the Milestone Ledger.

Every failure a public operation can report derives from MilestoneError and
carries a stable machine-readable code. A raised error always means the
operation left stored state unchanged.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class MilestoneError(Exception):
    """Base exception for all ledger failures."""

    code: str = "MILESTONE_ERROR"

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def details(self) -> Dict[str, Any]:
        return {}

    def to_response(self) -> Dict[str, Any]:
        """Render the error as a plain response envelope."""
        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        payload.update(self.details())
        return {"error": payload}


class InvalidInput(MilestoneError):
    """A supplied value failed validation."""

    code = "INVALID_INPUT"

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field

    def details(self) -> Dict[str, Any]:
        return {"field": self.field}


class CapacityExceeded(InvalidInput):
    """The owner already holds the maximum number of records."""

    code = "CAPACITY_EXCEEDED"

    def __init__(self, owner: str, limit: int) -> None:
        super().__init__(
            f"Owner '{owner}' already holds the maximum of {limit} milestones",
            field="record_id",
        )
        self.owner = owner
        self.limit = limit


class NotFound(MilestoneError):
    """No record exists at the requested owner and id."""

    code = "NOT_FOUND"

    def __init__(self, owner: str, record_id: int) -> None:
        super().__init__(f"Milestone {record_id} not found for owner '{owner}'")
        self.owner = owner
        self.record_id = record_id

    def details(self) -> Dict[str, Any]:
        return {"owner": self.owner, "record_id": self.record_id}


class Unauthorized(MilestoneError):
    """The caller does not own the targeted record."""

    code = "UNAUTHORIZED"

    def __init__(self, caller: str, record_id: int) -> None:
        super().__init__(f"Caller '{caller}' does not own milestone {record_id}")
        self.caller = caller
        self.record_id = record_id

    def details(self) -> Dict[str, Any]:
        return {"caller": self.caller, "record_id": self.record_id}


class MeteringExceeded(MilestoneError):
    """The per-call work budget was exhausted; the call is rolled back."""

    code = "METERING_EXCEEDED"

    def __init__(self, budget: int, requested: int) -> None:
        super().__init__(f"Metering budget of {budget} units exceeded ({requested} requested)")
        self.budget = budget
        self.requested = requested

    def details(self) -> Dict[str, Any]:
        return {"budget": self.budget, "requested": self.requested}


__all__ = [
    "MilestoneError",
    "InvalidInput",
    "CapacityExceeded",
    "NotFound",
    "Unauthorized",
    "MeteringExceeded",
]
