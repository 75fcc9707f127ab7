"""
Per-owner record id allocation.

The stored counter holds the last id assigned to an owner (seed 0), so the
next id is always `counter + 1` and `count(owner)` equals the number of
milestones the owner has created. Ids are never reused.
"""

from __future__ import annotations

from milestone_ledger.ledger.abstract import LedgerState


class CounterAllocator:
    """Computes and commits the next id from a single stored value."""

    SEED = 0

    def current(self, state: LedgerState, owner: str) -> int:
        return state.get_counter(owner)

    def next_id(self, state: LedgerState, owner: str) -> int:
        return self.current(state, owner) + 1

    def commit(self, state: LedgerState, owner: str, record_id: int) -> None:
        """
        Record record_id as the last assigned id.

        Must run in the same transaction as the `next_id` call that produced
        record_id, which is what keeps two creates from sharing an id.
        """
        if record_id <= self.SEED:
            raise ValueError(f"Record ids start at {self.SEED + 1}, got {record_id}")
        state.set_counter(owner, record_id)


__all__ = ["CounterAllocator"]
