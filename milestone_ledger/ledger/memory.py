"""
In-process ledger state backends.

InMemoryLedgerState keeps the three tables in dictionaries and stages every
write of a transaction in a write set that is applied on success and dropped
on failure. FileLedgerState adds a JSON snapshot written after each commit and a
lock file held for the whole transaction, so separate CLI invocations share
one consistent ledger.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Set, Tuple

from filelock import FileLock

from milestone_ledger.domain.models import Milestone
from milestone_ledger.ledger.abstract import LedgerState
from milestone_ledger.utils.logging import get_logger

log = get_logger(__name__)

MilestoneKey = Tuple[str, int]
MembershipKey = Tuple[str, int, int]


@dataclass
class _WriteSet:
    """Writes staged by the open transaction."""

    counters: Dict[str, int] = field(default_factory=dict)
    milestones: Dict[MilestoneKey, Milestone] = field(default_factory=dict)
    # True stages an insert, False a delete.
    memberships: Dict[MembershipKey, bool] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (self.counters or self.milestones or self.memberships)


class InMemoryLedgerState(LedgerState):
    """
    Dictionary-backed state with serialized, all-or-nothing transactions.

    A re-entrant lock is held for the whole transaction, so calls from several
    threads are totally ordered. Nested `transaction()` blocks join the
    outermost one.
    """

    name: str = "memory"

    def __init__(self) -> None:
        self._counters: Dict[str, int] = {}
        self._milestones: Dict[MilestoneKey, Milestone] = {}
        self._memberships: Set[MembershipKey] = set()
        self._lock = threading.RLock()
        self._pending: Optional[_WriteSet] = None
        self._depth = 0

    # Reads see staged writes first, then committed state.

    def get_counter(self, owner: str) -> int:
        with self._lock:
            if self._pending is not None and owner in self._pending.counters:
                return self._pending.counters[owner]
            return self._counters.get(owner, 0)

    def get_milestone(self, owner: str, record_id: int) -> Optional[Milestone]:
        key = (owner, record_id)
        with self._lock:
            if self._pending is not None and key in self._pending.milestones:
                return self._pending.milestones[key]
            return self._milestones.get(key)

    def has_membership(self, owner: str, goal_id: int, record_id: int) -> bool:
        key = (owner, goal_id, record_id)
        with self._lock:
            if self._pending is not None and key in self._pending.memberships:
                return self._pending.memberships[key]
            return key in self._memberships

    # Writes are only accepted inside a transaction.

    def _write_set(self) -> _WriteSet:
        if self._pending is None:
            raise RuntimeError(f"{type(self).__name__} writes require an open transaction")
        return self._pending

    def set_counter(self, owner: str, value: int) -> None:
        with self._lock:
            self._write_set().counters[owner] = value

    def put_milestone(self, milestone: Milestone) -> None:
        with self._lock:
            self._write_set().milestones[(milestone.owner, milestone.record_id)] = milestone

    def add_membership(self, owner: str, goal_id: int, record_id: int) -> None:
        with self._lock:
            self._write_set().memberships[(owner, goal_id, record_id)] = True

    def remove_membership(self, owner: str, goal_id: int, record_id: int) -> None:
        with self._lock:
            self._write_set().memberships[(owner, goal_id, record_id)] = False

    @contextmanager
    def transaction(self) -> Iterator[LedgerState]:
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                return

            self._pending = _WriteSet()
            self._depth = 1
            try:
                yield self
                pending = self._pending
                self._apply(pending)
            finally:
                self._pending = None
                self._depth = 0

    def _apply(self, pending: _WriteSet) -> None:
        self._counters.update(pending.counters)
        self._milestones.update(pending.milestones)
        for key, present in pending.memberships.items():
            if present:
                self._memberships.add(key)
            else:
                self._memberships.discard(key)

    # Snapshot helpers shared with the file backend.

    def to_snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(sorted(self._counters.items())),
                "milestones": [
                    m.model_dump(mode="json")
                    for _, m in sorted(self._milestones.items(), key=lambda item: item[0])
                ],
                "memberships": [list(key) for key in sorted(self._memberships)],
            }

    def load_snapshot(self, payload: Dict[str, Any]) -> None:
        with self._lock:
            self._counters = {str(k): int(v) for k, v in payload.get("counters", {}).items()}
            milestones = (Milestone.model_validate(raw) for raw in payload.get("milestones", []))
            self._milestones = {(m.owner, m.record_id): m for m in milestones}
            self._memberships = {
                (str(owner), int(goal_id), int(record_id))
                for owner, goal_id, record_id in payload.get("memberships", [])
            }


class FileLedgerState(InMemoryLedgerState):
    """
    In-memory state persisted as a JSON snapshot after every non-empty commit.

    Outermost transactions hold an inter-process lock on `<path>.lock` and
    reload the snapshot from disk first, so separate processes sharing one
    ledger file commit one after another and never reuse an id.
    """

    name: str = "file"

    def __init__(self, path: Path | str, lock_timeout: float = 30.0) -> None:
        super().__init__()
        self.path = Path(path)
        lock_path = self.path.with_name(f"{self.path.name}.lock")
        self._file_lock = FileLock(str(lock_path), timeout=lock_timeout)
        self._reload()

    def _reload(self) -> None:
        if not self.path.exists():
            self.load_snapshot({})
            return
        with self.path.open("r", encoding="utf-8") as f:
            self.load_snapshot(json.load(f))
        log.debug("Ledger snapshot loaded", extra={"path": str(self.path)})

    @contextmanager
    def transaction(self) -> Iterator[LedgerState]:
        with self._lock:
            if self._depth:
                with super().transaction() as state:
                    yield state
                return

            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self._file_lock:
                self._reload()
                with super().transaction() as state:
                    yield state

    def _apply(self, pending: _WriteSet) -> None:
        if pending.is_empty():
            return
        committed = (dict(self._counters), dict(self._milestones), set(self._memberships))
        super()._apply(pending)
        try:
            self._flush()
        except BaseException:
            self._counters, self._milestones, self._memberships = committed
            raise

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self.to_snapshot(), f, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


__all__ = ["InMemoryLedgerState", "FileLedgerState"]
