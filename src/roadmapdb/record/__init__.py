"""
Record

This package provides the generic record store and the pieces it is built
from: the column allow-list, the composite value codec, the query builder
and the bootstrap gate.
"""

from roadmapdb.record.bootstrap import BootstrapGate, BootstrapReport
from roadmapdb.record.codec import ValueCodec
from roadmapdb.record.columns import ColumnPolicy
from roadmapdb.record.query import QueryBuilder, QuerySpec
from roadmapdb.record.repository import INVALID_ID, UNKNOWN_OWNER_ID, RecordStore

__all__ = [
    "BootstrapGate",
    "BootstrapReport",
    "ColumnPolicy",
    "INVALID_ID",
    "QueryBuilder",
    "QuerySpec",
    "RecordStore",
    "UNKNOWN_OWNER_ID",
    "ValueCodec",
]
