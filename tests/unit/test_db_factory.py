from __future__ import annotations

from types import SimpleNamespace

import psycopg
import pytest
from psycopg import IsolationLevel
from tenacity import wait_none

from milestone_ledger.config import Settings
from milestone_ledger.ledger import db_factory, postgres

DSN = "postgresql://ledger:secret@db:5433/ledger"


def test_build_dsn_uses_settings() -> None:
    settings = Settings(
        DB_USER="ledger", DB_PASSWORD="secret", DB_HOST="db", DB_PORT=5433, DB_NAME="ledger"
    )

    assert db_factory.build_dsn(settings) == DSN


def test_sync_connection_retries_transient_failures(monkeypatch) -> None:
    attempts = []
    conn = SimpleNamespace(autocommit=False, isolation_level=None)

    def flaky_connect(dsn: str):
        attempts.append(dsn)
        if len(attempts) < 3:
            raise psycopg.OperationalError("connection refused")
        return conn

    monkeypatch.setattr(db_factory.psycopg, "connect", flaky_connect)
    connect = db_factory.get_sync_connection.retry_with(wait=wait_none())

    assert connect(DSN) is conn
    assert attempts == [DSN, DSN, DSN]
    assert conn.autocommit is True
    assert conn.isolation_level == IsolationLevel.SERIALIZABLE


def test_sync_connection_gives_up_after_three_attempts(monkeypatch) -> None:
    attempts = []

    def refused(dsn: str):
        attempts.append(dsn)
        raise psycopg.OperationalError("connection refused")

    monkeypatch.setattr(db_factory.psycopg, "connect", refused)
    connect = db_factory.get_sync_connection.retry_with(wait=wait_none())

    with pytest.raises(psycopg.OperationalError):
        connect(DSN)
    assert len(attempts) == 3


def test_sync_connection_does_not_retry_other_errors(monkeypatch) -> None:
    attempts = []

    def broken(dsn: str):
        attempts.append(dsn)
        raise psycopg.ProgrammingError("bad dsn")

    monkeypatch.setattr(db_factory.psycopg, "connect", broken)
    connect = db_factory.get_sync_connection.retry_with(wait=wait_none())

    with pytest.raises(psycopg.ProgrammingError):
        connect(DSN)
    assert len(attempts) == 1


class _RecordingConnection:
    def __init__(self) -> None:
        self.statements = []

    def __enter__(self) -> "_RecordingConnection":
        return self

    def __exit__(self, *exc_info) -> None:
        return None

    def execute(self, sql: str) -> None:
        self.statements.append(sql)


def test_ensure_schema_uses_retried_connection(monkeypatch) -> None:
    conn = _RecordingConnection()
    used = []

    def fake_connection(dsn: str) -> _RecordingConnection:
        used.append(dsn)
        return conn

    monkeypatch.setattr(postgres, "get_sync_connection", fake_connection)
    state = postgres.PostgresLedgerState(pool=SimpleNamespace(conninfo=DSN))

    state.ensure_schema()

    assert used == [DSN]
    assert conn.statements == [postgres.SCHEMA_SQL]
