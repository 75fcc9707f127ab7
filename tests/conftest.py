"""
Pytest configuration for the Milestone Ledger.

Provides fixtures for:
- Settings tuned for fast unit tests (small scan ceiling)
- In-memory ledger state and contracts over each goal index design
- PostgreSQL connection management for integration tests
"""

from __future__ import annotations

import os
from typing import Generator

import psycopg
import pytest

from milestone_ledger.config import Settings
from milestone_ledger.contract import MilestoneContract
from milestone_ledger.domain.models import CallContext
from milestone_ledger.index.registry import resolve_index
from milestone_ledger.ledger.memory import InMemoryLedgerState

NOW = 1_000
FUTURE = 5_000
MAX_RECORDS = 10


@pytest.fixture
def test_settings() -> Settings:
    """
    Settings fixture with a small bounded-scan ceiling and a memory backend.
    """
    return Settings(
        backend="memory",
        goal_index="membership",
        max_records_per_owner=MAX_RECORDS,
        meter_budget=10_000,
        meter_read_cost=1,
        meter_write_cost=5,
        log_level="DEBUG",
    )


@pytest.fixture
def state() -> InMemoryLedgerState:
    return InMemoryLedgerState()


@pytest.fixture(params=["membership", "derived"])
def index_name(request: pytest.FixtureRequest) -> str:
    """Run the dependent test once per goal index design."""
    return request.param


@pytest.fixture
def contract(
    state: InMemoryLedgerState, test_settings: Settings, index_name: str
) -> MilestoneContract:
    index = resolve_index(index_name, test_settings.max_records_per_owner)
    return MilestoneContract(state, index=index, settings=test_settings)


@pytest.fixture
def membership_contract(state: InMemoryLedgerState, test_settings: Settings) -> MilestoneContract:
    index = resolve_index("membership", test_settings.max_records_per_owner)
    return MilestoneContract(state, index=index, settings=test_settings)


@pytest.fixture
def alice() -> CallContext:
    return CallContext(caller="alice", now=NOW)


@pytest.fixture
def bob() -> CallContext:
    return CallContext(caller="bob", now=NOW)


@pytest.fixture(scope="session")
def test_dsn() -> str:
    """
    Database connection string for integration tests.
    """
    return (
        f"postgresql://{os.getenv('DB_USER', 'postgres')}:{os.getenv('DB_PASSWORD', 'postgres')}"
        f"@{os.getenv('DB_HOST', 'localhost')}:{os.getenv('DB_PORT', '5432')}"
        f"/{os.getenv('DB_NAME', 'milestone_ledger')}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            conn.execute("SELECT 1;").fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture
def pg_state(test_dsn: str, db_connection_available: bool) -> Generator:
    """
    Provide a PostgresLedgerState over empty ledger tables.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    from milestone_ledger.ledger.postgres import PostgresLedgerState

    state = PostgresLedgerState(dsn_override=test_dsn, pool_max_size=2)
    state.ensure_schema()
    with psycopg.connect(test_dsn, autocommit=True) as conn:
        conn.execute("TRUNCATE milestones, milestone_counters, goal_memberships;")
    try:
        yield state
    finally:
        with psycopg.connect(test_dsn, autocommit=True) as conn:
            conn.execute("TRUNCATE milestones, milestone_counters, goal_memberships;")
        state.close()
