"""
PostgreSQL ledger state backend.

Each `transaction()` borrows one pooled connection and wraps the call in a
SERIALIZABLE database transaction, so the three tables commit together or
not at all. Nested transaction blocks become savepoints.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from psycopg import Connection
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from milestone_ledger.domain.models import Milestone
from milestone_ledger.ledger.abstract import LedgerState
from milestone_ledger.ledger.db_factory import (
    configure_connection,
    get_sync_connection,
    get_sync_pool,
)
from milestone_ledger.utils.logging import get_logger

log = get_logger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS milestone_counters (
    owner       TEXT PRIMARY KEY,
    last_id     BIGINT NOT NULL CHECK (last_id >= 0)
);

CREATE TABLE IF NOT EXISTS milestones (
    owner               TEXT NOT NULL,
    record_id           BIGINT NOT NULL CHECK (record_id >= 1),
    title               VARCHAR(100) NOT NULL,
    description         VARCHAR(500) NOT NULL,
    goal_id             BIGINT NULL CHECK (goal_id >= 0),
    status              SMALLINT NOT NULL DEFAULT 0,
    progress_percentage BIGINT NOT NULL DEFAULT 0 CHECK (progress_percentage >= 0),
    target_date         BIGINT NOT NULL,
    created_at          BIGINT NOT NULL,
    updated_at          BIGINT NOT NULL,
    PRIMARY KEY (owner, record_id)
);

CREATE TABLE IF NOT EXISTS goal_memberships (
    owner       TEXT NOT NULL,
    goal_id     BIGINT NOT NULL,
    record_id   BIGINT NOT NULL,
    is_member   BOOLEAN NOT NULL DEFAULT TRUE,
    PRIMARY KEY (owner, goal_id, record_id)
);
"""

_MILESTONE_COLUMNS = (
    "owner, record_id, title, description, goal_id, status, "
    "progress_percentage, target_date, created_at, updated_at"
)


class PostgresLedgerState(LedgerState):
    """
    LedgerState backed by three PostgreSQL tables.
    """

    name: str = "postgres"

    def __init__(
        self,
        pool: Optional[ConnectionPool] = None,
        dsn_override: Optional[str] = None,
        pool_min_size: int = 1,
        pool_max_size: int = 10,
    ) -> None:
        self._owns_pool = False
        if pool is None and dsn_override:
            pool = ConnectionPool(
                conninfo=dsn_override,
                min_size=pool_min_size,
                max_size=pool_max_size,
                configure=configure_connection,
                open=True,
            )
            self._owns_pool = True
        self._pool = pool or get_sync_pool(min_size=pool_min_size, max_size=pool_max_size)
        self._dsn = dsn_override or self._pool.conninfo
        self._local = threading.local()

    def ensure_schema(self) -> None:
        """Create the ledger tables if missing, retrying transient connect failures."""
        with get_sync_connection(self._dsn) as conn:
            conn.execute(SCHEMA_SQL)
        log.info("Ledger schema ensured", extra={"backend": self.name})

    def _conn(self) -> Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            raise RuntimeError("PostgresLedgerState access requires an open transaction")
        return conn

    @contextmanager
    def transaction(self) -> Iterator[LedgerState]:
        current = getattr(self._local, "conn", None)
        if current is not None:
            with current.transaction():
                yield self
            return

        with self._pool.connection() as conn:
            self._local.conn = conn
            try:
                with conn.transaction():
                    yield self
            finally:
                self._local.conn = None

    def get_counter(self, owner: str) -> int:
        row = self._conn().execute(
            "SELECT last_id FROM milestone_counters WHERE owner = %s;", (owner,)
        ).fetchone()
        return int(row[0]) if row else 0

    def set_counter(self, owner: str, value: int) -> None:
        self._conn().execute(
            "INSERT INTO milestone_counters (owner, last_id) VALUES (%s, %s) "
            "ON CONFLICT (owner) DO UPDATE SET last_id = EXCLUDED.last_id;",
            (owner, value),
        )

    def get_milestone(self, owner: str, record_id: int) -> Optional[Milestone]:
        with self._conn().cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"SELECT {_MILESTONE_COLUMNS} FROM milestones WHERE owner = %s AND record_id = %s;",
                (owner, record_id),
            )
            row = cur.fetchone()
        return Milestone.model_validate(row) if row else None

    def put_milestone(self, milestone: Milestone) -> None:
        self._conn().execute(
            f"INSERT INTO milestones ({_MILESTONE_COLUMNS}) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s) "
            "ON CONFLICT (owner, record_id) DO UPDATE SET "
            "title = EXCLUDED.title, description = EXCLUDED.description, "
            "goal_id = EXCLUDED.goal_id, status = EXCLUDED.status, "
            "progress_percentage = EXCLUDED.progress_percentage, "
            "target_date = EXCLUDED.target_date, updated_at = EXCLUDED.updated_at;",
            (
                milestone.owner,
                milestone.record_id,
                milestone.title,
                milestone.description,
                milestone.goal_id,
                int(milestone.status),
                milestone.progress_percentage,
                milestone.target_date,
                milestone.created_at,
                milestone.updated_at,
            ),
        )

    def has_membership(self, owner: str, goal_id: int, record_id: int) -> bool:
        row = self._conn().execute(
            "SELECT is_member FROM goal_memberships "
            "WHERE owner = %s AND goal_id = %s AND record_id = %s;",
            (owner, goal_id, record_id),
        ).fetchone()
        return bool(row and row[0])

    def add_membership(self, owner: str, goal_id: int, record_id: int) -> None:
        self._conn().execute(
            "INSERT INTO goal_memberships (owner, goal_id, record_id, is_member) "
            "VALUES (%s, %s, %s, TRUE) "
            "ON CONFLICT (owner, goal_id, record_id) DO UPDATE SET is_member = TRUE;",
            (owner, goal_id, record_id),
        )

    def remove_membership(self, owner: str, goal_id: int, record_id: int) -> None:
        self._conn().execute(
            "DELETE FROM goal_memberships WHERE owner = %s AND goal_id = %s AND record_id = %s;",
            (owner, goal_id, record_id),
        )

    def close(self) -> None:
        if self._owns_pool:
            self._pool.close()


__all__ = ["PostgresLedgerState", "SCHEMA_SQL"]
