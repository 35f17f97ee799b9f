from __future__ import annotations

import contextlib
import logging
from typing import Any, Callable, Iterator, Optional

import psycopg2
from psycopg2.extras import RealDictCursor
from psycopg2.pool import ThreadedConnectionPool

from .config import Settings
from .errors import StoreError

logger = logging.getLogger(__name__)


class Database:
    """
    Process-scoped connection pool.

    open() at startup, close() at shutdown. Each cursor() call checks a
    connection out, commits (or rolls back) and hands it back to the pool.
    getconn() never waits: an exhausted pool raises PoolError, which surfaces
    as StoreError like any other database fault.
    """

    def __init__(
        self,
        dsn: str,
        *,
        minconn: int = 1,
        maxconn: int = 10,
        sslmode: Optional[str] = None,
        pool_factory: Callable[..., Any] = ThreadedConnectionPool,
    ) -> None:
        self._dsn = dsn
        self._minconn = minconn
        self._maxconn = maxconn
        self._sslmode = sslmode
        self._pool_factory = pool_factory
        self._pool: Any = None

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "Database":
        return cls(
            settings.database_url,
            minconn=settings.db_pool_min,
            maxconn=settings.db_pool_max,
            sslmode=settings.db_sslmode,
            **kwargs,
        )

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def open(self) -> "Database":
        if self._pool is not None:
            return self
        kwargs: dict[str, Any] = {"dsn": self._dsn}
        if self._sslmode:
            kwargs["sslmode"] = self._sslmode
        try:
            self._pool = self._pool_factory(self._minconn, self._maxconn, **kwargs)
        except psycopg2.Error as e:
            raise StoreError(str(e)) from e
        logger.info(
            "Connection pool opened min=%s max=%s sslmode=%s",
            self._minconn,
            self._maxconn,
            self._sslmode or "default",
        )
        return self

    def close(self) -> None:
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        pool.closeall()
        logger.info("Connection pool closed")

    @contextlib.contextmanager
    def cursor(self) -> Iterator[Any]:
        """Yield a dict-row cursor on a pooled connection; one statement per use."""
        pool = self._pool
        if pool is None:
            raise StoreError("connection pool is not open")
        try:
            conn = pool.getconn()
        except psycopg2.Error as e:
            raise StoreError(str(e)) from e

        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                yield cur
            conn.commit()
        except psycopg2.Error as e:
            self._rollback(conn)
            raise StoreError(str(e)) from e
        except BaseException:
            self._rollback(conn)
            raise
        finally:
            pool.putconn(conn, close=bool(conn.closed))

    @staticmethod
    def _rollback(conn: Any) -> None:
        if conn.closed:
            return
        try:
            conn.rollback()
        except psycopg2.Error:
            logger.warning("Rollback failed", exc_info=True)
