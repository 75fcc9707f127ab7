"""
Milestone record store.

Owns create/update/read/count semantics over the `milestones` table. New ids
come from the CounterAllocator and goal bookkeeping is delegated to the
configured GoalIndex. All writes of one call go through the caller's open
transaction; validation happens before the first write, so a rejected call
never leaves partial state behind.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import ValidationError

from milestone_ledger.counter import CounterAllocator
from milestone_ledger.domain.models import (
    UNSET,
    CallContext,
    Milestone,
    MilestoneStatus,
    parse_status,
)
from milestone_ledger.errors import CapacityExceeded, InvalidInput, NotFound, Unauthorized
from milestone_ledger.index.abstract import GoalIndex
from milestone_ledger.ledger.abstract import LedgerState

_UPDATABLE_FIELDS = (
    "title",
    "description",
    "goal_id",
    "status",
    "progress_percentage",
    "target_date",
)


def _validated(data: Dict[str, Any]) -> Milestone:
    """Build a Milestone, translating pydantic failures into InvalidInput."""
    try:
        return Milestone.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise InvalidInput(f"Invalid {field}: {first['msg']}", field=field) from None


class RecordStore:
    """
    Keyed mapping from (owner, record_id) to Milestone.
    """

    def __init__(
        self,
        index: GoalIndex,
        allocator: Optional[CounterAllocator] = None,
    ) -> None:
        self.index = index
        self.allocator = allocator or CounterAllocator()

    @property
    def max_records_per_owner(self) -> int:
        return self.index.max_records_per_owner

    def create(
        self,
        state: LedgerState,
        ctx: CallContext,
        *,
        title: str,
        description: str,
        target_date: int,
        goal_id: Optional[int] = None,
    ) -> int:
        """
        Create a Pending milestone for the caller and return its id.

        Raises
        ------
        InvalidInput
            On empty or oversized text, a target date not after `ctx.now`,
            or a negative goal id.
        CapacityExceeded
            When the caller already holds `max_records_per_owner` milestones.
        """
        record_id = self.allocator.next_id(state, ctx.caller)
        milestone = _validated(
            {
                "owner": ctx.caller,
                "record_id": record_id,
                "title": title,
                "description": description,
                "goal_id": goal_id,
                "status": MilestoneStatus.PENDING,
                "progress_percentage": 0,
                "target_date": target_date,
                "created_at": ctx.now,
                "updated_at": ctx.now,
            }
        )
        if milestone.target_date <= ctx.now:
            raise InvalidInput(
                f"target_date {milestone.target_date} must be after the ledger clock {ctx.now}",
                field="target_date",
            )
        if record_id > self.max_records_per_owner:
            raise CapacityExceeded(ctx.caller, self.max_records_per_owner)

        state.put_milestone(milestone)
        self.allocator.commit(state, ctx.caller, record_id)
        self.index.on_create(state, milestone)
        return record_id

    def update(
        self,
        state: LedgerState,
        ctx: CallContext,
        record_id: int,
        *,
        title: Any = UNSET,
        description: Any = UNSET,
        goal_id: Any = UNSET,
        status: Any = UNSET,
        progress_percentage: Any = UNSET,
        target_date: Any = UNSET,
    ) -> Milestone:
        """
        Apply a partial update to one of the caller's milestones.

        Omitted fields keep their value; `goal_id=None` clears the goal.
        `updated_at` is always refreshed to `ctx.now`. The target date is
        validated as an unsigned integer only, not against the clock.

        Raises
        ------
        NotFound
            No milestone exists at (ctx.caller, record_id).
        Unauthorized
            The stored milestone is owned by someone other than the caller.
        InvalidInput
            A supplied field fails validation.
        """
        current = state.get_milestone(ctx.caller, record_id)
        if current is None:
            raise NotFound(ctx.caller, record_id)
        # Always true while lookups are keyed by caller; kept for other key shapes.
        if current.owner != ctx.caller:
            raise Unauthorized(ctx.caller, record_id)

        supplied = {
            "title": title,
            "description": description,
            "goal_id": goal_id,
            "status": status,
            "progress_percentage": progress_percentage,
            "target_date": target_date,
        }
        changes = {name: supplied[name] for name in _UPDATABLE_FIELDS if supplied[name] is not UNSET}
        if "status" in changes:
            changes["status"] = parse_status(changes["status"])

        data = current.model_dump()
        data.update(changes)
        data["updated_at"] = ctx.now
        updated = _validated(data)

        state.put_milestone(updated)
        if updated.goal_id != current.goal_id:
            self.index.on_goal_change(state, updated, current.goal_id)
        return updated

    def read(self, state: LedgerState, owner: str, record_id: int) -> Optional[Milestone]:
        """Public read; no authorization applies."""
        return state.get_milestone(owner, record_id)

    def count(self, state: LedgerState, owner: str) -> int:
        """Number of milestones the owner has created (the last assigned id)."""
        return self.allocator.current(state, owner)


__all__ = ["RecordStore"]
