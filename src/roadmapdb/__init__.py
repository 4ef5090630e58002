"""
roadmapdb

Generic record access for the roadmap service: allow-listed, parameterized
SQL over a shared async connection pool, gated by a one-time schema bootstrap.
"""

from roadmapdb.db import Database
from roadmapdb.record import RecordStore

__all__ = ["Database", "RecordStore"]
