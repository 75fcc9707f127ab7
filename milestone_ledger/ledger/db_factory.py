"""
Database connection factory utilities for the Milestone Ledger.

Provides centralized management of the PostgreSQL connection pool used by the
postgres state backend. The PoolManager singleton ensures the pool is closed
on application exit.

Includes retry logic for transient connection failures using tenacity.
"""

from __future__ import annotations

import atexit
import threading
from typing import Optional

import psycopg
from psycopg import Connection, IsolationLevel
from psycopg_pool import ConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from milestone_ledger.config import Settings, get_settings


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


def configure_connection(conn: Connection) -> None:
    """
    Put a fresh connection into the mode the ledger expects.

    Autocommit lets `conn.transaction()` issue its own BEGIN/COMMIT, and
    serializable isolation gives every call a total order.
    """
    conn.autocommit = True
    conn.isolation_level = IsolationLevel.SERIALIZABLE


class PoolManager:
    """
    Thread-safe singleton managing the shared connection pool.

    Handles lifecycle management with automatic cleanup via atexit hook.
    """

    _instance: Optional["PoolManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "PoolManager":
        """Create or return the singleton instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._pool = None
                atexit.register(cls._instance.close_all)
            return cls._instance

    def get_pool(self, min_size: int = 1, max_size: int = 10) -> ConnectionPool:
        """
        Get or create the connection pool.

        Parameters
        ----------
        min_size : int
            Minimum number of idle connections to keep.
        max_size : int
            Maximum total connections in the pool.
        """
        with self._lock:
            if self._pool is None:
                self._pool = ConnectionPool(
                    conninfo=build_dsn(),
                    min_size=min_size,
                    max_size=max_size,
                    configure=configure_connection,
                    open=True,
                )
            return self._pool

    def close_all(self) -> None:
        """
        Close the managed pool. Called automatically on exit via atexit hook.
        """
        with self._lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.close()


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn: Optional[str] = None) -> Connection:
    """
    Acquire a dedicated connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection
    errors. Use this for one-off work such as schema setup.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    conn = psycopg.connect(dsn or build_dsn())
    configure_connection(conn)
    return conn


def get_sync_pool(min_size: int = 1, max_size: int = 10) -> ConnectionPool:
    """
    Get or create the shared connection pool via PoolManager.
    """
    return PoolManager().get_pool(min_size=min_size, max_size=max_size)


__all__ = [
    "PoolManager",
    "build_dsn",
    "configure_connection",
    "get_sync_connection",
    "get_sync_pool",
]
