"""
Database connection pool and query utilities.

A Database is an explicitly owned handle around one psycopg async
connection pool. The pool is created on first use and lives until close().
Every helper leases a connection for exactly one statement and returns it
to the pool on every exit path.

For testing, pass a pool to the constructor. Anything with the same
``open()``, ``close()`` and ``connection()`` surface as
psycopg_pool.AsyncConnectionPool will do.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Sequence

import psycopg
from psycopg import AsyncConnection
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from roadmapdb.config import Config, config
from roadmapdb.errors import ConnectionFailure, StatementFailure

logger = logging.getLogger(__name__)


def _preview(query: str) -> str:
    return " ".join(query.split())[:100]


@dataclass
class StatementResult:
    """Outcome of one statement: affected row count and any returned rows."""

    rowcount: int = 0
    rows: list[dict[str, Any]] = field(default_factory=list)


class Database:
    def __init__(self, settings: Config | None = None, pool: AsyncConnectionPool | None = None):
        self.settings = settings or config
        self._pool = pool
        self._owns_pool = pool is None
        self._opened = False
        self._closed = False
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._opened and not self._closed

    def _create_pool(self) -> AsyncConnectionPool:
        return AsyncConnectionPool(
            conninfo=self.settings.conninfo,
            min_size=self.settings.pool_min_size,
            max_size=self.settings.pool_max_size,
            timeout=self.settings.pool_timeout,
            open=False,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def open(self) -> AsyncConnectionPool:
        """
        Create and open the pool if that has not happened yet.

        Safe to call from many tasks at once; only the first one opens.

        Raises:
            ConnectionFailure: If the handle is closed or the server is unreachable
        """
        if self._closed:
            raise ConnectionFailure("Database handle has been closed")
        if self._opened:
            return self._pool

        async with self._lock:
            if not self._opened:
                if self._pool is None:
                    self._pool = self._create_pool()
                try:
                    await self._pool.open(wait=True, timeout=self.settings.pool_timeout)
                except psycopg.OperationalError as e:
                    logger.error(f"Failed to open connection pool: {e}")
                    # an injected pool stays in place for the next attempt
                    if self._owns_pool:
                        await self._pool.close()
                        self._pool = None
                    raise ConnectionFailure(f"Failed to open connection pool: {e}") from e
                self._opened = True
                logger.info(
                    f"Connection pool open: {self.settings.db_host}:{self.settings.db_port}"
                    f"/{self.settings.db_name}"
                )
        return self._pool

    async def close(self) -> None:
        """Close the pool. The handle cannot be reopened."""
        if self._closed:
            return
        self._closed = True
        if self._pool is not None and self._opened:
            await self._pool.close()
            logger.info("Connection pool closed")

    # =========================================================================
    # Connection Management
    # =========================================================================

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[AsyncConnection]:
        """
        Lease a connection from the pool.

        The pool commits on successful exit, rolls back on exception and
        takes the connection back in both cases.

        Usage:
            async with database.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute("SELECT ...")
        """
        pool = await self.open()
        async with pool.connection() as conn:
            yield conn

    # =========================================================================
    # Query Helpers
    # =========================================================================

    async def execute(self, query: str, params: Sequence[Any] | None = None) -> StatementResult:
        """
        Execute one statement and collect its result.

        Args:
            query: SQL query with %s placeholders
            params: Parameter values

        Returns:
            StatementResult with the affected row count and returned rows

        Raises:
            ConnectionFailure: If no connection could be leased or it broke
            StatementFailure: If the database rejected the statement
        """
        try:
            async with self.connection() as conn, conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(query, params)
                rows = await cur.fetchall() if cur.description else []
                logger.debug(f"Executed: {_preview(query)} | rowcount={cur.rowcount}")
                return StatementResult(rowcount=cur.rowcount, rows=rows)
        except psycopg.OperationalError as e:
            logger.error(f"Connection failed: {e} | Query: {_preview(query)}")
            raise ConnectionFailure(str(e)) from e
        except psycopg.Error as e:
            logger.error(f"Statement failed: {e} | Query: {_preview(query)}")
            raise StatementFailure(str(e)) from e

    async def fetch_one(self, query: str, params: Sequence[Any] | None = None) -> dict[str, Any] | None:
        """
        Execute a query and return the first row as dict, or None if no row found.
        """
        result = await self.execute(query, params)
        return result.rows[0] if result.rows else None

    async def fetch_all(self, query: str, params: Sequence[Any] | None = None) -> list[dict[str, Any]]:
        """
        Execute a query and return all rows as list of dicts, empty list if no rows found.
        """
        result = await self.execute(query, params)
        return result.rows
