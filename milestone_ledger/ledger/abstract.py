"""
Ledger state interface for the Milestone Ledger.

A LedgerState exposes the three logical tables every backend persists:

- milestones           keyed by (owner, record_id)
- milestone counters   keyed by owner, holding the last assigned id
- goal memberships     keyed by (owner, goal_id, record_id)

All reads and writes of one public operation happen inside a single
`transaction()` block: either every write commits or none does.
"""

from __future__ import annotations

import abc
from contextlib import AbstractContextManager
from typing import Optional

from milestone_ledger.domain.models import Milestone


class LedgerState(abc.ABC):
    """
    Common interface all state backends implement.

    Attributes
    ----------
    name : str
        A short machine-friendly identifier of the backend.
    """

    name: str

    @abc.abstractmethod
    def get_counter(self, owner: str) -> int:
        """Return the last id assigned to owner, 0 if none."""

    @abc.abstractmethod
    def set_counter(self, owner: str, value: int) -> None:
        """Store the last id assigned to owner."""

    @abc.abstractmethod
    def get_milestone(self, owner: str, record_id: int) -> Optional[Milestone]:
        """Return the milestone at (owner, record_id), or None."""

    @abc.abstractmethod
    def put_milestone(self, milestone: Milestone) -> None:
        """Insert or replace the milestone at its (owner, record_id) key."""

    @abc.abstractmethod
    def has_membership(self, owner: str, goal_id: int, record_id: int) -> bool:
        """Return whether the membership tuple exists."""

    @abc.abstractmethod
    def add_membership(self, owner: str, goal_id: int, record_id: int) -> None:
        """Mark record_id as a member of goal_id."""

    @abc.abstractmethod
    def remove_membership(self, owner: str, goal_id: int, record_id: int) -> None:
        """Drop the membership tuple if present."""

    @abc.abstractmethod
    def transaction(self) -> AbstractContextManager["LedgerState"]:
        """
        Open an all-or-nothing unit of work.

        Writes become visible to other callers only when the block exits
        normally; any exception discards them and propagates.
        """

    def close(self) -> None:
        """Release backend resources. Default is a no-op."""


__all__ = ["LedgerState"]
