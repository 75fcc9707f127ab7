"""
Registry of goal index designs.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from milestone_ledger.config import get_settings
from milestone_ledger.index.abstract import GoalIndex
from milestone_ledger.index.derived import DerivedIndex
from milestone_ledger.index.membership import MembershipIndex


def _index_factories(
    max_records_per_owner: Optional[int] = None,
) -> Dict[str, Callable[[], GoalIndex]]:
    """Registry of available index designs."""
    limit = max_records_per_owner or get_settings().max_records_per_owner
    return {
        "membership": lambda: MembershipIndex(max_records_per_owner=limit),
        "derived": lambda: DerivedIndex(max_records_per_owner=limit),
    }


def available_indexes() -> List[str]:
    """List available index design names."""
    return sorted(_index_factories(max_records_per_owner=1).keys())


def resolve_index(name: str, max_records_per_owner: Optional[int] = None) -> GoalIndex:
    factories = _index_factories(max_records_per_owner)
    if name not in factories:
        raise ValueError(f"Unknown goal index '{name}'. Available: {', '.join(sorted(factories))}")
    return factories[name]()


__all__ = ["available_indexes", "resolve_index"]
