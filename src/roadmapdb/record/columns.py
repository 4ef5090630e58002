"""
Column allow-list.

Table and column names cannot be bound as query parameters, so every
identifier the query builder interpolates must come from this list.
"""

from typing import Iterable, Mapping

from roadmapdb.errors import RejectedColumns, UnknownTable

TABLE_COLUMNS: dict[str, frozenset[str]] = {
    "users": frozenset(
        {"id", "name", "email", "avatar", "pwd_hash", "google_id", "github_id", "created_at"}
    ),
    "user_info": frozenset({"id", "user_id", "bio", "quote", "website_url", "github_url"}),
    "sessions": frozenset({"id", "user_id", "token", "expires"}),
    "roadmaps": frozenset(
        {
            "id",
            "name",
            "description",
            "topic",
            "user_id",
            "is_featured",
            "is_public",
            "is_draft",
            "data",
            "created_at",
            "updated_at",
        }
    ),
    "roadmap_likes": frozenset({"id", "roadmap_id", "user_id", "value", "created_at"}),
    "roadmap_views": frozenset({"id", "user_id", "roadmap_id", "is_full", "created_at"}),
    "issues": frozenset(
        {"id", "roadmap_id", "user_id", "is_open", "title", "content", "created_at", "updated_at"}
    ),
    "issue_comments": frozenset(
        {"id", "issue_id", "user_id", "content", "created_at", "updated_at"}
    ),
    "followers": frozenset({"id", "follower_id", "user_id", "created_at"}),
}


class ColumnPolicy:
    """
    Allow-list of the tables and columns generic queries may reference.

    By default a column is trusted if any table declares it (one global
    list). With per_table=True a column must belong to the table queried.
    """

    def __init__(self, tables: Mapping[str, Iterable[str]], per_table: bool = False):
        self._tables = {table: frozenset(columns) for table, columns in tables.items()}
        self._columns = frozenset().union(*self._tables.values())
        self.per_table = per_table

    @classmethod
    def default(cls, per_table: bool = False) -> "ColumnPolicy":
        return cls(TABLE_COLUMNS, per_table=per_table)

    @property
    def tables(self) -> frozenset[str]:
        return frozenset(self._tables)

    @property
    def columns(self) -> frozenset[str]:
        return self._columns

    def is_known_table(self, table: str) -> bool:
        return table in self._tables

    def is_trusted(self, column: str, table: str | None = None) -> bool:
        if self.per_table and table is not None:
            return column in self._tables.get(table, ())
        return column in self._columns

    def require(self, table: str, columns: Iterable[str]) -> None:
        """
        Check a table and the columns a statement will reference.

        Raises:
            UnknownTable: table is not in the allow-list
            RejectedColumns: at least one column is not trusted
        """
        if not self.is_known_table(table):
            raise UnknownTable(table)
        rejected = [c for c in columns if not self.is_trusted(c, table)]
        if rejected:
            raise RejectedColumns(table, rejected)
