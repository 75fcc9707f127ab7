"""
Public entry point of the Milestone Ledger.

MilestoneContract runs every operation as one atomic, metered step: it opens
a state transaction, wraps the state in a MeteredState with a fresh budget,
and delegates to the RecordStore or the GoalIndex. Any exception rolls the
whole call back.

Usage:
    contract = MilestoneContract.from_settings()
    ctx = CallContext(caller="alice", now=1_000)
    record_id = contract.create_milestone(ctx, "Ship v1", "Tag and release", target_date=2_000, goal_id=7)
    contract.goal_progress("alice", 7)
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from milestone_ledger.config import Settings, get_settings
from milestone_ledger.domain.models import UNSET, CallContext, GoalProgress, Milestone
from milestone_ledger.errors import MilestoneError
from milestone_ledger.index.abstract import GoalIndex
from milestone_ledger.index.registry import resolve_index
from milestone_ledger.ledger import open_state
from milestone_ledger.ledger.abstract import LedgerState
from milestone_ledger.metering import Meter, MeteredState, MeterUsage
from milestone_ledger.store import RecordStore
from milestone_ledger.utils.logging import get_logger

log = get_logger(__name__)


class MilestoneContract:
    """
    Atomic, metered facade over the record store and the goal index.
    """

    def __init__(
        self,
        state: LedgerState,
        index: Optional[GoalIndex] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.state = state
        self.index = index or resolve_index(
            self.settings.goal_index, self.settings.max_records_per_owner
        )
        self.store = RecordStore(self.index)
        self.last_usage: Optional[MeterUsage] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "MilestoneContract":
        """Build a contract over the backend and index named in settings."""
        settings = settings or get_settings()
        return cls(open_state(settings), settings=settings)

    def _new_meter(self) -> Meter:
        return Meter(
            budget=self.settings.meter_budget,
            read_cost=self.settings.meter_read_cost,
            write_cost=self.settings.meter_write_cost,
        )

    @contextmanager
    def _call(self, operation: str, **context: Any) -> Iterator[LedgerState]:
        meter = self._new_meter()
        try:
            with self.state.transaction():
                yield MeteredState(self.state, meter)
        except MilestoneError as exc:
            log.warning(
                f"[{operation.upper()} REJECTED] {exc.code}",
                extra={"operation": operation, "error": exc.code, "units": meter.units, **context},
            )
            raise
        finally:
            self.last_usage = meter.usage()
        log.debug(
            f"[{operation.upper()}] ok",
            extra={"operation": operation, "units": meter.units, **context},
        )

    # Mutations

    def create_milestone(
        self,
        ctx: CallContext,
        title: str,
        description: str,
        target_date: int,
        goal_id: Optional[int] = None,
    ) -> int:
        with self._call("create", caller=ctx.caller, goal_id=goal_id) as state:
            record_id = self.store.create(
                state,
                ctx,
                title=title,
                description=description,
                target_date=target_date,
                goal_id=goal_id,
            )
        log.info(
            "Milestone created",
            extra={"caller": ctx.caller, "record_id": record_id, "goal_id": goal_id},
        )
        return record_id

    def update_milestone(self, ctx: CallContext, record_id: int, **fields: Any) -> Milestone:
        """
        Partially update one of the caller's milestones.

        Accepted keyword fields: title, description, goal_id, status,
        progress_percentage, target_date. Omitted fields keep their value.
        """
        changes: Dict[str, Any] = {k: v for k, v in fields.items() if v is not UNSET}
        with self._call("update", caller=ctx.caller, record_id=record_id) as state:
            updated = self.store.update(state, ctx, record_id, **changes)
        log.info(
            "Milestone updated",
            extra={"caller": ctx.caller, "record_id": record_id, "fields": sorted(changes)},
        )
        return updated

    # Reads

    def get_milestone(self, owner: str, record_id: int) -> Optional[Milestone]:
        with self._call("read", owner=owner, record_id=record_id) as state:
            return self.store.read(state, owner, record_id)

    def get_milestone_count(self, owner: str) -> int:
        with self._call("count", owner=owner) as state:
            return self.store.count(state, owner)

    def list_milestones(self, owner: str) -> List[Milestone]:
        """All of the owner's milestones, via the same bounded id range as aggregation."""
        with self._call("list", owner=owner) as state:
            last_id = self.store.count(state, owner)
            milestones: List[Milestone] = []
            for record_id in range(1, self.store.max_records_per_owner + 1):
                if record_id > last_id:
                    continue
                milestone = self.store.read(state, owner, record_id)
                if milestone is not None:
                    milestones.append(milestone)
            return milestones

    def is_goal_member(self, owner: str, goal_id: int, record_id: int) -> bool:
        with self._call("is_member", owner=owner, goal_id=goal_id, record_id=record_id) as state:
            return self.index.is_member(state, owner, goal_id, record_id)

    def goal_summary(self, owner: str, goal_id: int) -> GoalProgress:
        with self._call("aggregate", owner=owner, goal_id=goal_id) as state:
            return self.index.aggregate(state, owner, goal_id)

    def goal_progress(self, owner: str, goal_id: int) -> int:
        """Floor mean progress of the owner's milestones in goal_id; 0 without members."""
        return self.goal_summary(owner, goal_id).average_progress

    def close(self) -> None:
        self.state.close()


__all__ = ["MilestoneContract"]
