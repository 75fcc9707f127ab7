"""
Milestone Ledger - per-identity milestone records with goal progress aggregation.

This package provides a deterministic record store designed for a shared,
transactional ledger, including:

- Collision-free per-owner id allocation
- Partial-update (PATCH) semantics for milestone records
- Two goal index designs: an explicit membership table and derive-on-read
- Bounded, metered aggregation over a fixed candidate id range
- In-memory, JSON file and PostgreSQL state backends

Every public operation runs as one all-or-nothing transaction; a failed call
leaves stored state unchanged.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from milestone_ledger.config import Settings, get_settings
from milestone_ledger.contract import MilestoneContract
from milestone_ledger.domain.models import (
    UNSET,
    CallContext,
    GoalProgress,
    Milestone,
    MilestoneStatus,
)
from milestone_ledger.errors import (
    CapacityExceeded,
    InvalidInput,
    MeteringExceeded,
    MilestoneError,
    NotFound,
    Unauthorized,
)
from milestone_ledger.index import (
    DerivedIndex,
    GoalIndex,
    MembershipIndex,
    available_indexes,
    resolve_index,
)
from milestone_ledger.ledger import (
    FileLedgerState,
    InMemoryLedgerState,
    LedgerState,
    PostgresLedgerState,
    open_state,
)
from milestone_ledger.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Contract facade
    "MilestoneContract",
    # Domain
    "CallContext",
    "GoalProgress",
    "Milestone",
    "MilestoneStatus",
    "UNSET",
    # Errors
    "CapacityExceeded",
    "InvalidInput",
    "MeteringExceeded",
    "MilestoneError",
    "NotFound",
    "Unauthorized",
    # Goal indexes
    "DerivedIndex",
    "GoalIndex",
    "MembershipIndex",
    "available_indexes",
    "resolve_index",
    # State backends
    "FileLedgerState",
    "InMemoryLedgerState",
    "LedgerState",
    "PostgresLedgerState",
    "open_state",
    # Logging
    "configure_logging",
    "get_logger",
]
