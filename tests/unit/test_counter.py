from __future__ import annotations

import pytest

from milestone_ledger.counter import CounterAllocator
from milestone_ledger.ledger.memory import InMemoryLedgerState


def test_fresh_owner_starts_at_one() -> None:
    state = InMemoryLedgerState()
    allocator = CounterAllocator()

    assert allocator.current(state, "alice") == 0
    assert allocator.next_id(state, "alice") == 1


def test_commit_advances_only_the_given_owner() -> None:
    state = InMemoryLedgerState()
    allocator = CounterAllocator()

    with state.transaction():
        allocator.commit(state, "alice", allocator.next_id(state, "alice"))
        allocator.commit(state, "alice", allocator.next_id(state, "alice"))

    assert allocator.current(state, "alice") == 2
    assert allocator.next_id(state, "alice") == 3
    assert allocator.current(state, "bob") == 0


def test_commit_rejects_ids_below_one() -> None:
    state = InMemoryLedgerState()

    with pytest.raises(ValueError):
        with state.transaction():
            CounterAllocator().commit(state, "alice", 0)
