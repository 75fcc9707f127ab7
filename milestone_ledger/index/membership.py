"""
Membership-table goal index.

Keeps one (owner, goal_id, record_id) tuple per associated record, written in
the same transaction as the record itself. Membership tests are a single
lookup, and aggregation reads a record body only for slots that are members.
"""

from __future__ import annotations

from typing import Optional

from milestone_ledger.domain.models import Milestone
from milestone_ledger.index.abstract import AbstractGoalIndex
from milestone_ledger.ledger.abstract import LedgerState


class MembershipIndex(AbstractGoalIndex):
    """
    Denormalized secondary index maintained on every create and goal change.
    """

    name: str = "membership"
    description: str = "Explicit membership table; O(1) membership tests, body reads for members only."

    def on_create(self, state: LedgerState, milestone: Milestone) -> None:
        if milestone.goal_id is not None:
            state.add_membership(milestone.owner, milestone.goal_id, milestone.record_id)

    def on_goal_change(
        self, state: LedgerState, milestone: Milestone, previous_goal: Optional[int]
    ) -> None:
        if previous_goal == milestone.goal_id:
            return
        if previous_goal is not None:
            state.remove_membership(milestone.owner, previous_goal, milestone.record_id)
        if milestone.goal_id is not None:
            state.add_membership(milestone.owner, milestone.goal_id, milestone.record_id)

    def is_member(self, state: LedgerState, owner: str, goal_id: int, record_id: int) -> bool:
        return state.has_membership(owner, goal_id, record_id)

    def _member_progress(
        self, state: LedgerState, owner: str, goal_id: int, record_id: int
    ) -> Optional[int]:
        if not state.has_membership(owner, goal_id, record_id):
            return None
        milestone = state.get_milestone(owner, record_id)
        # Stale tuple with no body behind it.
        if milestone is None:
            return None
        return milestone.progress_percentage


__all__ = ["MembershipIndex"]
