"""
Goal index interfaces for the Milestone Ledger.

A goal index answers two questions for one owner: "does record R belong to
goal G" and "what is the mean progress of the records in goal G". Concrete
designs (explicit membership table, derive-on-read) implement the GoalIndex
protocol; AbstractGoalIndex supplies the shared bounded scan.

Bounded scan: aggregation walks the fixed candidate range
1..max_records_per_owner regardless of how many records the owner actually
holds. Slots past the owner's counter, empty slots and non-members are
skipped. The range size is a hard per-owner capacity, enforced by the store
at create time.
"""

from __future__ import annotations

import abc
from typing import Optional, Protocol, runtime_checkable

from milestone_ledger.domain.models import GoalProgress, Milestone
from milestone_ledger.ledger.abstract import LedgerState


@runtime_checkable
class GoalIndex(Protocol):
    """
    Common interface all goal index designs implement.

    Attributes
    ----------
    name : str
        A short machine-friendly identifier.
    description : str
        A human-friendly summary of the design.
    max_records_per_owner : int
        Size of the fixed candidate id range scanned by `aggregate`.
    """

    name: str
    description: str
    max_records_per_owner: int

    def on_create(self, state: LedgerState, milestone: Milestone) -> None:
        """Bookkeeping for a freshly written milestone."""
        ...

    def on_goal_change(
        self, state: LedgerState, milestone: Milestone, previous_goal: Optional[int]
    ) -> None:
        """Bookkeeping after a milestone's goal_id changed from previous_goal."""
        ...

    def is_member(self, state: LedgerState, owner: str, goal_id: int, record_id: int) -> bool:
        ...

    def aggregate(self, state: LedgerState, owner: str, goal_id: int) -> GoalProgress:
        """
        Average progress over the owner's records in goal_id; never raises
        for absent owners, goals or members.
        """
        ...


class AbstractGoalIndex(abc.ABC):
    """
    ABC helper for goal index designs.

    Subclasses set `name` and `description` and implement the bookkeeping
    hooks, `is_member` and `_member_progress`.
    """

    name: str
    description: str

    def __init__(self, max_records_per_owner: int = 100) -> None:
        if max_records_per_owner < 1:
            raise ValueError("max_records_per_owner must be at least 1")
        self.max_records_per_owner = max_records_per_owner

    @abc.abstractmethod
    def on_create(self, state: LedgerState, milestone: Milestone) -> None:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def on_goal_change(
        self, state: LedgerState, milestone: Milestone, previous_goal: Optional[int]
    ) -> None:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def is_member(
        self, state: LedgerState, owner: str, goal_id: int, record_id: int
    ) -> bool:  # pragma: no cover
        raise NotImplementedError

    @abc.abstractmethod
    def _member_progress(
        self, state: LedgerState, owner: str, goal_id: int, record_id: int
    ) -> Optional[int]:  # pragma: no cover
        """Return the record's progress if it is a member of goal_id, else None."""
        raise NotImplementedError

    def aggregate(self, state: LedgerState, owner: str, goal_id: int) -> GoalProgress:
        last_id = state.get_counter(owner)
        members = 0
        total = 0
        probed = 0

        for record_id in range(1, self.max_records_per_owner + 1):
            if record_id > last_id:
                continue
            probed += 1
            progress = self._member_progress(state, owner, goal_id, record_id)
            if progress is None:
                continue
            members += 1
            total += progress

        return GoalProgress(
            owner=owner,
            goal_id=goal_id,
            member_count=members,
            total_progress=total,
            average_progress=total // members if members else 0,
            slots=self.max_records_per_owner,
            probed=probed,
        )


__all__ = ["AbstractGoalIndex", "GoalIndex"]
