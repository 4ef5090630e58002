# src/roadmapdb/conftest.py
"""
Pytest configuration and shared fixtures.

Tests are co-located with implementation files using the *_test.py suffix.
Unit tests run against an in-memory backend that understands the statements
the record store generates, behind a fake pool with the same surface as
psycopg_pool.AsyncConnectionPool. Integration tests need a live PostgreSQL
and only run with ROADMAPDB_INTEGRATION=1.
"""

import os

# Set environment BEFORE importing any app modules
os.environ["ROADMAPDB_ENV"] = "test"

import asyncio
import re
from contextlib import asynccontextmanager
from itertools import count

import psycopg
import pytest

from roadmapdb.config import config
from roadmapdb.db import Database
from roadmapdb.record import BootstrapGate, RecordStore
from roadmapdb.record.bootstrap import load_statements

# =============================================================================
# In-memory backend
# =============================================================================

_CREATE = re.compile(r"CREATE TABLE IF NOT EXISTS (\w+)")
_INSERT = re.compile(r"INSERT INTO (\w+) \((.+)\) VALUES \((.+)\) RETURNING id$")
_INSERT_DEFAULT = re.compile(r"INSERT INTO (\w+) DEFAULT VALUES RETURNING id$")
_UPDATE = re.compile(r"UPDATE (\w+) SET (.+) WHERE id = %s$")
_DELETE = re.compile(r"DELETE FROM (\w+) WHERE id = %s$")
_SELECT = re.compile(
    r"SELECT (\*|COUNT\(\*\) AS count) FROM (\w+)"
    r"(?: WHERE (.+?))?( ORDER BY id)?(?: LIMIT (\d+))?$"
)


def like_to_regex(pattern: str) -> re.Pattern:
    parts = []
    for char in pattern:
        if char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.DOTALL)


class MemoryBackend:
    """
    Tables as lists of dicts, driven by the generated SQL.

    Only the statement shapes the query builder produces are understood;
    anything else raises a psycopg SyntaxError, like a real server would.
    """

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self._ids: dict[str, count] = {}
        self.statements: list[tuple[str, list]] = []
        self.failures: dict[str, Exception] = {}

    def fail_on(self, fragment: str, error: Exception) -> None:
        """Raise error for every statement containing fragment."""
        self.failures[fragment] = error

    def rows(self, table: str) -> list[dict]:
        return self.tables.get(table, [])

    def _table(self, name: str) -> list[dict]:
        if name not in self.tables:
            raise psycopg.errors.UndefinedTable(f'relation "{name}" does not exist')
        return self.tables[name]

    def run(self, query: str, params: list):
        """Returns (rows, rowcount, returns_rows)."""
        self.statements.append((query, params))
        for fragment, error in self.failures.items():
            if fragment in query:
                raise error

        query = " ".join(query.split())
        m = _CREATE.match(query)
        if m:
            self.tables.setdefault(m[1], [])
            self._ids.setdefault(m[1], count(1))
            return [], -1, False
        if query.startswith("CREATE"):
            return [], -1, False

        m = _INSERT_DEFAULT.match(query)
        if m:
            return self._insert(m[1], {})
        m = _INSERT.match(query)
        if m:
            columns = [c.strip() for c in m[2].split(",")]
            return self._insert(m[1], dict(zip(columns, params)))

        m = _UPDATE.match(query)
        if m:
            columns = [a.split("=")[0].strip() for a in m[2].split(",")]
            *values, record_id = params
            hits = [r for r in self._table(m[1]) if r["id"] == record_id]
            for row in hits:
                row.update(zip(columns, values))
            return [], len(hits), False

        m = _DELETE.match(query)
        if m:
            rows = self._table(m[1])
            keep = [r for r in rows if r["id"] != params[0]]
            removed = len(rows) - len(keep)
            rows[:] = keep
            return [], removed, False

        m = _SELECT.match(query)
        if m:
            rows = [r for r in self._table(m[2]) if self._matches(r, m[3], params)]
            if m[1] != "*":
                return [{"count": len(rows)}], 1, True
            if m[4]:
                rows = sorted(rows, key=lambda r: r["id"])
            if m[5]:
                rows = rows[: int(m[5])]
            return [dict(r) for r in rows], len(rows), True

        raise psycopg.errors.SyntaxError(f"unsupported statement: {query}")

    def _insert(self, table: str, values: dict):
        rows = self._table(table)
        row = dict(values)
        if "id" not in row:
            row["id"] = next(self._ids[table])
        rows.append(row)
        return [{"id": row["id"]}], 1, True

    @staticmethod
    def _matches(row: dict, where: str | None, params: list) -> bool:
        if not where:
            return True
        for condition, value in zip(where.split(" AND "), params):
            column, operator, _ = condition.split(" ")
            actual = row.get(column)
            if operator == "=" and actual != value:
                return False
            if operator == "LIKE" and not like_to_regex(value).fullmatch(str(actual)):
                return False
        return True


# =============================================================================
# Fake pool
# =============================================================================


class FakeCursor:
    def __init__(self, backend: MemoryBackend):
        self._backend = backend
        self._rows: list[dict] = []
        self.rowcount = -1
        self.description = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def execute(self, query, params=None):
        # Yield so concurrent operations interleave like they would on a server
        await asyncio.sleep(0)
        rows, self.rowcount, returns_rows = self._backend.run(query, list(params or []))
        self._rows = rows
        self.description = [("column",)] if returns_rows else None

    async def fetchall(self):
        return list(self._rows)


class FakeConnection:
    def __init__(self, backend: MemoryBackend):
        self._backend = backend

    def cursor(self, row_factory=None):
        return FakeCursor(self._backend)


class FakePool:
    """Bounded pool that records how connections are leased and returned."""

    def __init__(self, backend: MemoryBackend, max_size: int = 4):
        self.backend = backend
        self.max_size = max_size
        self._slots = asyncio.Semaphore(max_size)
        self.open_calls = 0
        self.closed = False
        self.leased = 0
        self.peak = 0
        self.acquired = 0
        self.released = 0
        self.acquire_error: Exception | None = None

    async def open(self, wait: bool = False, timeout: float = 30.0) -> None:
        self.open_calls += 1

    async def close(self) -> None:
        self.closed = True

    @asynccontextmanager
    async def connection(self, timeout: float | None = None):
        if self.acquire_error is not None:
            raise self.acquire_error
        async with self._slots:
            self.leased += 1
            self.acquired += 1
            self.peak = max(self.peak, self.leased)
            try:
                yield FakeConnection(self.backend)
            finally:
                self.leased -= 1
                self.released += 1


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def fake_pool(backend):
    return FakePool(backend)


@pytest.fixture
def database(fake_pool):
    """A Database handle backed by the fake pool."""
    return Database(pool=fake_pool)


@pytest.fixture
def setup_statements():
    """Statements of the packaged setup script."""
    return load_statements(config.setup_sql_path)


@pytest.fixture
def store(database, setup_statements):
    """A RecordStore that bootstraps the packaged schema into memory."""
    return RecordStore(database, gate=BootstrapGate(setup_statements))


@pytest.fixture
def live_database():
    """A Database for the configured PostgreSQL server."""
    if os.environ.get("ROADMAPDB_INTEGRATION") != "1":
        pytest.skip("set ROADMAPDB_INTEGRATION=1 to run against PostgreSQL")
    return Database(config)
