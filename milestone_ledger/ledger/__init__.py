"""
Ledger state package for the Milestone Ledger.

Centralizes persistence of the three logical tables (milestones, counters,
goal memberships) behind the LedgerState interface. Keep this layer focused on
storage and transactions, decoupled from record and index semantics.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from milestone_ledger.config import Settings, get_settings
from milestone_ledger.ledger.abstract import LedgerState
from milestone_ledger.ledger.memory import FileLedgerState, InMemoryLedgerState
from milestone_ledger.ledger.postgres import PostgresLedgerState


def _postgres_state(settings: Settings) -> PostgresLedgerState:
    state = PostgresLedgerState(pool_max_size=settings.db_pool_max_size)
    state.ensure_schema()
    return state


def _backend_factories() -> Dict[str, Callable[[Settings], LedgerState]]:
    """Registry of available state backends."""
    return {
        "memory": lambda settings: InMemoryLedgerState(),
        "file": lambda settings: FileLedgerState(settings.state_path),
        "postgres": _postgres_state,
    }


def available_backends() -> List[str]:
    """List available backend names."""
    return sorted(_backend_factories().keys())


def open_state(settings: Optional[Settings] = None) -> LedgerState:
    """
    Build the state backend named by `settings.backend`.
    """
    settings = settings or get_settings()
    factories = _backend_factories()
    if settings.backend not in factories:
        raise ValueError(
            f"Unknown backend '{settings.backend}'. Available: {', '.join(sorted(factories))}"
        )
    return factories[settings.backend](settings)


__all__ = [
    "FileLedgerState",
    "InMemoryLedgerState",
    "LedgerState",
    "PostgresLedgerState",
    "available_backends",
    "open_state",
]
