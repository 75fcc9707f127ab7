"""
Integration tests for the PostgreSQL ledger backend.

These tests run against a real PostgreSQL instance and verify that:
1. The contract behaves the same over Postgres as over the in-memory state
2. Rejected calls roll back every table
3. The membership table stays consistent with record goals

Run with: RUN_INTEGRATION_TESTS=1 pytest tests/integration/
"""

from __future__ import annotations

import os

import pytest

from milestone_ledger.config import Settings
from milestone_ledger.contract import MilestoneContract
from milestone_ledger.domain.models import CallContext, MilestoneStatus
from milestone_ledger.errors import InvalidInput, MeteringExceeded, NotFound
from milestone_ledger.index.registry import resolve_index

NOW = 1_000
FUTURE = 5_000
MAX_RECORDS = 10

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION_TESTS", "0") != "1",
    reason="Integration tests require RUN_INTEGRATION_TESTS=1 and reachable Postgres",
)


def _settings(**overrides) -> Settings:
    values = {"backend": "postgres", "max_records_per_owner": MAX_RECORDS, "meter_budget": 10_000}
    values.update(overrides)
    return Settings(**values)


@pytest.fixture(params=["membership", "derived"])
def pg_contract(pg_state, request) -> MilestoneContract:
    settings = _settings(goal_index=request.param)
    return MilestoneContract(
        pg_state, index=resolve_index(request.param, MAX_RECORDS), settings=settings
    )


class TestPostgresContract:
    """Contract operations over the postgres backend."""

    def test_create_and_read_back(self, pg_contract: MilestoneContract):
        ctx = CallContext(caller="alice", now=NOW)
        record_id = pg_contract.create_milestone(ctx, "Title", "Description", target_date=FUTURE, goal_id=7)

        milestone = pg_contract.get_milestone("alice", record_id)
        assert record_id == 1
        assert milestone.goal_id == 7
        assert milestone.status is MilestoneStatus.PENDING
        assert pg_contract.get_milestone_count("alice") == 1
        assert pg_contract.is_goal_member("alice", 7, record_id) is True

    def test_scenario_aggregation(self, pg_contract: MilestoneContract):
        ctx = CallContext(caller="alice", now=NOW)
        for goal, progress in ((7, 20), (7, 80), (9, 65)):
            record_id = pg_contract.create_milestone(ctx, "T", "D", target_date=FUTURE, goal_id=goal)
            pg_contract.update_milestone(ctx, record_id, progress_percentage=progress)

        assert pg_contract.goal_progress("alice", 7) == 50
        assert pg_contract.goal_progress("alice", 9) == 65
        assert pg_contract.goal_progress("alice", 123) == 0

    def test_goal_change_moves_membership(self, pg_contract: MilestoneContract):
        ctx = CallContext(caller="alice", now=NOW)
        record_id = pg_contract.create_milestone(ctx, "T", "D", target_date=FUTURE, goal_id=1)

        pg_contract.update_milestone(ctx, record_id, goal_id=2)
        assert pg_contract.is_goal_member("alice", 1, record_id) is False
        assert pg_contract.is_goal_member("alice", 2, record_id) is True

        pg_contract.update_milestone(ctx, record_id, goal_id=None)
        assert pg_contract.is_goal_member("alice", 2, record_id) is False

    def test_rejected_calls_leave_state_unchanged(self, pg_contract: MilestoneContract):
        ctx = CallContext(caller="alice", now=NOW)
        with pytest.raises(InvalidInput):
            pg_contract.create_milestone(ctx, "", "D", target_date=FUTURE)
        with pytest.raises(NotFound):
            pg_contract.update_milestone(ctx, 1, title="X")

        assert pg_contract.get_milestone_count("alice") == 0


def test_metering_abort_rolls_back_database_writes(pg_state):
    settings = _settings(meter_budget=8)
    contract = MilestoneContract(pg_state, index=resolve_index("membership", MAX_RECORDS), settings=settings)

    with pytest.raises(MeteringExceeded):
        contract.create_milestone(
            CallContext(caller="alice", now=NOW), "T", "D", target_date=FUTURE, goal_id=1
        )

    with pg_state.transaction():
        assert pg_state.get_milestone("alice", 1) is None
        assert pg_state.get_counter("alice") == 0
        assert pg_state.has_membership("alice", 1, 1) is False
