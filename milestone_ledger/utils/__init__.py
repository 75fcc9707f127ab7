"""
Utilities package for the Milestone Ledger.

Exports shared helpers for logging and profiling. Keep this package
lightweight and free of domain-specific logic.
"""

from milestone_ledger.utils.logging import configure_logging, get_logger
from milestone_ledger.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
