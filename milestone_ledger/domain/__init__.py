"""
Domain package for the Milestone Ledger.

Exports the core domain models used by the store, the goal indexes and the
contract facade. Keep this package focused on data definitions and validation.
"""

from milestone_ledger.domain.models import (
    DESCRIPTION_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    UNSET,
    CallContext,
    GoalProgress,
    Milestone,
    MilestoneStatus,
    parse_status,
)

__all__ = [
    "CallContext",
    "DESCRIPTION_MAX_LENGTH",
    "GoalProgress",
    "Milestone",
    "MilestoneStatus",
    "TITLE_MAX_LENGTH",
    "UNSET",
    "parse_status",
]
