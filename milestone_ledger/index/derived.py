"""
Derive-on-read goal index.

Stores nothing besides the record's own goal_id. Membership tests and
aggregation re-read record bodies and compare the foreign key directly, so
writes carry no index bookkeeping at all.
"""

from __future__ import annotations

from typing import Optional

from milestone_ledger.domain.models import Milestone
from milestone_ledger.index.abstract import AbstractGoalIndex
from milestone_ledger.ledger.abstract import LedgerState


class DerivedIndex(AbstractGoalIndex):
    """
    Membership derived from each record's goal_id at read time.
    """

    name: str = "derived"
    description: str = "No secondary table; every candidate record body is read and filtered."

    def on_create(self, state: LedgerState, milestone: Milestone) -> None:
        del state, milestone

    def on_goal_change(
        self, state: LedgerState, milestone: Milestone, previous_goal: Optional[int]
    ) -> None:
        del state, milestone, previous_goal

    def is_member(self, state: LedgerState, owner: str, goal_id: int, record_id: int) -> bool:
        milestone = state.get_milestone(owner, record_id)
        return milestone is not None and milestone.goal_id == goal_id

    def _member_progress(
        self, state: LedgerState, owner: str, goal_id: int, record_id: int
    ) -> Optional[int]:
        milestone = state.get_milestone(owner, record_id)
        if milestone is None or milestone.goal_id != goal_id:
            return None
        return milestone.progress_percentage


__all__ = ["DerivedIndex"]
