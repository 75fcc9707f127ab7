"""
Goal index package for the Milestone Ledger.

Re-exports the index interfaces, both concrete designs and the registry so
downstream code can import from `milestone_ledger.index` directly.
"""

from milestone_ledger.index.abstract import AbstractGoalIndex, GoalIndex
from milestone_ledger.index.derived import DerivedIndex
from milestone_ledger.index.membership import MembershipIndex
from milestone_ledger.index.registry import available_indexes, resolve_index

__all__ = [
    # Abstracts
    "AbstractGoalIndex",
    "GoalIndex",
    # Concrete designs
    "DerivedIndex",
    "MembershipIndex",
    # Registry
    "available_indexes",
    "resolve_index",
]
