"""
Error taxonomy for the record store.

Expected conditions (an untrusted column, a malformed predicate) are
subclasses of InvalidQuery. The store catches those and answers with a
sentinel result instead of raising. Everything else propagates to the caller.
"""

from typing import Any, Iterable, Sequence


class RecordStoreError(Exception):
    """Base class for all record store errors."""


class InvalidQuery(RecordStoreError):
    """A query that must not reach the database."""


class UnknownTable(InvalidQuery):
    def __init__(self, table: str):
        self.table = table
        super().__init__(f"Table '{table}' is not in the allow-list")


class RejectedColumns(InvalidQuery):
    def __init__(self, table: str, columns: Iterable[str]):
        self.table = table
        self.columns = tuple(columns)
        super().__init__(
            f"Untrusted column(s) for '{table}': {', '.join(self.columns)}"
        )


class MalformedPredicate(InvalidQuery):
    def __init__(self, pairs: Sequence[Any]):
        self.pairs = tuple(pairs)
        if not self.pairs:
            reason = "no column/value pairs given"
        else:
            reason = f"odd number of items ({len(self.pairs)})"
        super().__init__(f"Malformed predicate: {reason}")


class ConnectionFailure(RecordStoreError):
    """The database could not be reached or a connection could not be leased."""


class StatementFailure(RecordStoreError):
    """The database rejected a statement."""


class DecodeFailure(RecordStoreError):
    def __init__(self, column: str, value: str):
        self.column = column
        self.value = value
        super().__init__(f"Column '{column}' holds a malformed composite value")


class BootstrapError(RecordStoreError):
    def __init__(self, failures: Sequence[tuple[str, Exception]]):
        self.failures = list(failures)
        super().__init__(f"{len(self.failures)} setup statement(s) failed")
