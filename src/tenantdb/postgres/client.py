"""PostgreSQL connection pool and SQL client."""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Sequence

import psycopg2
import psycopg2.extras
import psycopg2.pool

logger = logging.getLogger(__name__)


class ConnectionPool:
    """Thread-safe pool of psycopg2 connections.

    Connections are handed out through connection(), which always returns
    them to the pool, including when the body raises.
    """

    def __init__(
        self,
        dsn: str,
        min_size: int = 1,
        max_size: int = 10,
        sslmode: Optional[str] = None,
    ) -> None:
        kwargs: dict[str, Any] = {}
        if sslmode:
            kwargs["sslmode"] = sslmode
        self._pool = psycopg2.pool.ThreadedConnectionPool(
            min_size, max_size, dsn, **kwargs
        )
        logger.info("Connected to PostgreSQL (pool size %d-%d)", min_size, max_size)

    @contextmanager
    def connection(self) -> Iterator[Any]:
        conn = self._pool.getconn()
        try:
            yield conn
        finally:
            self._pool.putconn(conn)

    def close(self) -> None:
        if not self._pool.closed:
            self._pool.closeall()

    def __enter__(self) -> "ConnectionPool":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()


class PostgresClient:
    """Runs single statements, each on its own pooled connection and transaction."""

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    def fetchall(
        self, sql: str, params: Optional[Sequence[Any]] = None
    ) -> list[dict[str, Any]]:
        """Execute SQL and return results as list of dicts."""
        with self.pool.connection() as conn:
            try:
                with conn.cursor(
                    cursor_factory=psycopg2.extras.RealDictCursor
                ) as cursor:
                    cursor.execute(sql, params)
                    rows = [dict(row) for row in cursor.fetchall()]
                conn.commit()
                return rows
            except Exception:
                conn.rollback()
                raise

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> None:
        """Execute a statement that returns no rows."""
        with self.pool.connection() as conn:
            try:
                with conn.cursor() as cursor:
                    cursor.execute(sql, params)
                conn.commit()
            except Exception:
                conn.rollback()
                raise
