"""
Profiling utilities for the Milestone Ledger design benchmark.

Measures wall-clock time (perf_counter), CPU usage (psutil) and peak Python
allocations (tracemalloc) around a block of code.

Usage:
    from milestone_ledger.utils.profiler import profile_block

    with profile_block("membership") as stats:
        contract.goal_summary("alice", 7)

    print(stats.duration_seconds, stats.peak_traced_bytes)
"""

from __future__ import annotations

import contextlib
import time
import tracemalloc
from dataclasses import dataclass, field
from typing import Any, Generator, Optional

import psutil


@dataclass
class ProfileStats:
    """
    Container for profiling measurements.
    """

    label: str
    start_ts: float = field(default=0.0)
    end_ts: float = field(default=0.0)
    duration_seconds: float = field(default=0.0)
    peak_traced_bytes: Optional[int] = field(default=None)
    cpu_percent: Optional[float] = field(default=None)
    extra: dict[str, Any] = field(default_factory=dict)


@contextlib.contextmanager
def profile_block(label: str, enable_tracemalloc: bool = True) -> Generator[ProfileStats, None, None]:
    """
    Context manager to profile a block of code.

    Parameters
    ----------
    label : str
        Human-friendly label for the profiled block.
    enable_tracemalloc : bool
        Whether to track peak Python-level allocations. Leaves tracemalloc
        running if it was already started by the caller.
    """
    stats = ProfileStats(label=label)
    process = psutil.Process()

    tracemalloc_was_running = tracemalloc.is_tracing()
    if enable_tracemalloc and not tracemalloc_was_running:
        tracemalloc.start()
    if enable_tracemalloc:
        tracemalloc.reset_peak()

    # cpu_percent needs a priming call
    process.cpu_percent(interval=None)

    stats.start_ts = time.perf_counter()
    try:
        yield stats
    finally:
        stats.end_ts = time.perf_counter()
        stats.duration_seconds = stats.end_ts - stats.start_ts
        stats.cpu_percent = process.cpu_percent(interval=None)

        if enable_tracemalloc and tracemalloc.is_tracing():
            _, peak_traced = tracemalloc.get_traced_memory()
            stats.peak_traced_bytes = peak_traced
            if not tracemalloc_was_running:
                tracemalloc.stop()


__all__ = ["ProfileStats", "profile_block"]
