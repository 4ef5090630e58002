"""
Parameterized SQL for generic record operations.

Every builder returns a QuerySpec, or None when the request must not reach
the database (unknown table, untrusted column, malformed predicate). Only
values are bound as parameters; identifiers are interpolated after the
column policy has accepted them.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from roadmapdb.errors import InvalidQuery, MalformedPredicate
from roadmapdb.record.codec import ValueCodec
from roadmapdb.record.columns import ColumnPolicy

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    SELECT = "SELECT"
    COUNT = "COUNT"


@dataclass(frozen=True)
class Clause:
    column: str
    operator: str
    value: Any

    def render(self) -> str:
        return f"{self.column} {self.operator} %s"


@dataclass(frozen=True)
class QuerySpec:
    """
    One statement against one table.

    For INSERT and UPDATE, ``values`` holds the column assignments. ``where``
    holds the conditions, joined with AND in order.
    """

    table: str
    kind: Operation
    values: tuple[Clause, ...] = ()
    where: tuple[Clause, ...] = ()
    limit: Optional[int] = None
    order_by_id: bool = field(default=False)

    def columns(self) -> list[str]:
        return [c.column for c in self.values + self.where]

    def render(self) -> tuple[str, list[Any]]:
        """Render the statement as (sql, params)."""
        if self.kind is Operation.INSERT:
            if not self.values:
                return f"INSERT INTO {self.table} DEFAULT VALUES RETURNING id", []
            cols = ", ".join(c.column for c in self.values)
            placeholders = ", ".join("%s" for _ in self.values)
            sql = f"INSERT INTO {self.table} ({cols}) VALUES ({placeholders}) RETURNING id"
            return sql, [c.value for c in self.values]

        if self.kind is Operation.UPDATE:
            assignments = ", ".join(c.render() for c in self.values)
            sql = f"UPDATE {self.table} SET {assignments}"
        elif self.kind is Operation.DELETE:
            sql = f"DELETE FROM {self.table}"
        elif self.kind is Operation.COUNT:
            sql = f"SELECT COUNT(*) AS count FROM {self.table}"
        else:
            sql = f"SELECT * FROM {self.table}"

        if self.where:
            sql += " WHERE " + " AND ".join(c.render() for c in self.where)
        if self.order_by_id:
            sql += " ORDER BY id"
        if self.limit is not None:
            sql += f" LIMIT {int(self.limit)}"

        return sql, [c.value for c in self.values + self.where]


def pairs_to_clauses(pairs: Sequence[Any], operator: str = "=") -> tuple[Clause, ...]:
    """
    Turn a flattened [column, value, column, value, ...] list into clauses.

    Raises:
        MalformedPredicate: the list is empty or has odd length
    """
    if not pairs or len(pairs) % 2:
        raise MalformedPredicate(pairs)
    return tuple(
        Clause(str(pairs[i]), operator, pairs[i + 1]) for i in range(0, len(pairs), 2)
    )


class QueryBuilder:
    """Builds QuerySpecs, checking every identifier against a ColumnPolicy."""

    def __init__(self, policy: ColumnPolicy, codec: ValueCodec):
        self.policy = policy
        self.codec = codec

    def _checked(self, spec: QuerySpec) -> QuerySpec:
        self.policy.require(spec.table, spec.columns())
        return spec

    def _build(self, factory, *args) -> Optional[QuerySpec]:
        try:
            return self._checked(factory(*args))
        except InvalidQuery as e:
            logger.warning("Rejected %s query: %s", factory.__name__.lstrip("_"), e)
            return None

    # Writes

    def insert(
        self, table: str, record: Mapping[str, Any], keep_id: bool = False
    ) -> Optional[QuerySpec]:
        """INSERT ... RETURNING id. ``id`` is dropped unless keep_id is set."""
        return self._build(self._insert, table, record, keep_id)

    def _insert(self, table, record, keep_id):
        encoded = self.codec.encode_record(record)
        values = tuple(
            Clause(column, "=", value)
            for column, value in encoded.items()
            if keep_id or column != "id"
        )
        return QuerySpec(table, Operation.INSERT, values=values)

    def update(self, table: str, record_id: int, record: Mapping[str, Any]) -> Optional[QuerySpec]:
        """UPDATE ... SET <record minus id> WHERE id = %s."""
        return self._build(self._update, table, record_id, record)

    def _update(self, table, record_id, record):
        encoded = self.codec.encode_record(record)
        values = tuple(Clause(c, "=", v) for c, v in encoded.items() if c != "id")
        if not values:
            raise MalformedPredicate(())
        return QuerySpec(
            table, Operation.UPDATE, values=values, where=(Clause("id", "=", record_id),)
        )

    def delete(self, table: str, record_id: int) -> Optional[QuerySpec]:
        return self._build(self._delete, table, record_id)

    def _delete(self, table, record_id):
        return QuerySpec(table, Operation.DELETE, where=(Clause("id", "=", record_id),))

    # Reads

    def select_by_id(self, table: str, record_id: int) -> Optional[QuerySpec]:
        return self._build(self._select_by_id, table, record_id)

    def _select_by_id(self, table, record_id):
        return QuerySpec(table, Operation.SELECT, where=(Clause("id", "=", record_id),))

    def select_where(
        self,
        table: str,
        pairs: Sequence[Any],
        like: bool = False,
        first: bool = False,
    ) -> Optional[QuerySpec]:
        """
        SELECT * ... WHERE col = %s AND ... ORDER BY id.

        Args:
            table: Table to query
            pairs: Alternating column/value items
            like: Match with LIKE instead of equality
            first: Only fetch the first matching row

        Returns:
            QuerySpec, or None if the pairs are malformed or untrusted
        """
        return self._build(self._select_where, table, pairs, like, first)

    def _select_where(self, table, pairs, like, first):
        where = pairs_to_clauses(self._encode_pairs(pairs, like), "LIKE" if like else "=")
        return QuerySpec(
            table,
            Operation.SELECT,
            where=where,
            order_by_id=True,
            limit=1 if first else None,
        )

    def count(self, table: str) -> Optional[QuerySpec]:
        return self._build(self._count, table)

    def _count(self, table):
        return QuerySpec(table, Operation.COUNT)

    def count_where(self, table: str, pairs: Sequence[Any], like: bool = False) -> Optional[QuerySpec]:
        return self._build(self._count_where, table, pairs, like)

    def _count_where(self, table, pairs, like):
        where = pairs_to_clauses(self._encode_pairs(pairs, like), "LIKE" if like else "=")
        return QuerySpec(table, Operation.COUNT, where=where)

    def _encode_pairs(self, pairs: Sequence[Any], like: bool = False) -> list[Any]:
        # values sit at odd positions
        encode = self.codec.encode_pattern if like else self.codec.encode
        return [item if i % 2 == 0 else encode(item) for i, item in enumerate(pairs)]
