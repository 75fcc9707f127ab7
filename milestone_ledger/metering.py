"""
Per-call work metering.

Every storage access inside a contract call is charged against a fixed budget.
Exhausting the budget raises MeteringExceeded, which aborts the surrounding
transaction so the call leaves no trace.

Usage:
    meter = Meter(budget=1_000, read_cost=1, write_cost=5)
    state = MeteredState(inner_state, meter)
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from milestone_ledger.domain.models import Milestone
from milestone_ledger.errors import MeteringExceeded
from milestone_ledger.ledger.abstract import LedgerState


@dataclass
class MeterUsage:
    """
    Snapshot of the work charged during one call.
    """

    budget: int
    units: int = 0
    reads: int = 0
    writes: int = 0

    @property
    def remaining(self) -> int:
        return self.budget - self.units


class Meter:
    """Tracks and enforces the work budget of a single call."""

    def __init__(self, budget: int, read_cost: int = 1, write_cost: int = 5) -> None:
        self.budget = int(budget)
        self.read_cost = int(read_cost)
        self.write_cost = int(write_cost)
        self.units = 0
        self.reads = 0
        self.writes = 0

    def can_spend(self, units: int) -> bool:
        """Return whether charging units stays within budget."""
        return self.units + units <= self.budget

    def charge(self, units: int) -> None:
        """Charge units or raise MeteringExceeded without charging."""
        if not self.can_spend(units):
            raise MeteringExceeded(self.budget, self.units + units)
        self.units += units

    def charge_read(self) -> None:
        self.charge(self.read_cost)
        self.reads += 1

    def charge_write(self) -> None:
        self.charge(self.write_cost)
        self.writes += 1

    def usage(self) -> MeterUsage:
        return MeterUsage(budget=self.budget, units=self.units, reads=self.reads, writes=self.writes)


class MeteredState(LedgerState):
    """
    LedgerState proxy that charges a Meter for every read and write.

    Transactions are delegated unchanged; the proxy is meant to be created
    inside an already-open transaction of the wrapped state.
    """

    def __init__(self, inner: LedgerState, meter: Meter) -> None:
        self.inner = inner
        self.meter = meter
        self.name = inner.name

    def get_counter(self, owner: str) -> int:
        self.meter.charge_read()
        return self.inner.get_counter(owner)

    def set_counter(self, owner: str, value: int) -> None:
        self.meter.charge_write()
        self.inner.set_counter(owner, value)

    def get_milestone(self, owner: str, record_id: int) -> Optional[Milestone]:
        self.meter.charge_read()
        return self.inner.get_milestone(owner, record_id)

    def put_milestone(self, milestone: Milestone) -> None:
        self.meter.charge_write()
        self.inner.put_milestone(milestone)

    def has_membership(self, owner: str, goal_id: int, record_id: int) -> bool:
        self.meter.charge_read()
        return self.inner.has_membership(owner, goal_id, record_id)

    def add_membership(self, owner: str, goal_id: int, record_id: int) -> None:
        self.meter.charge_write()
        self.inner.add_membership(owner, goal_id, record_id)

    def remove_membership(self, owner: str, goal_id: int, record_id: int) -> None:
        self.meter.charge_write()
        self.inner.remove_membership(owner, goal_id, record_id)

    @contextmanager
    def transaction(self) -> Iterator[LedgerState]:
        with self.inner.transaction():
            yield self


__all__ = ["Meter", "MeterUsage", "MeteredState"]
