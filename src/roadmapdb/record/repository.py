"""
Generic record store.

Every public operation waits for the bootstrap gate, builds one checked
statement, runs it on a pooled connection and decodes composite values in
the rows it returns.

Expected conditions answer with sentinels instead of raising:

    insert  -> INVALID_ID
    update  -> False
    delete  -> False
    get*    -> None
    count*  -> 0

Connection, statement and decode failures propagate.
"""

import logging
from typing import Any, List, Mapping, Optional

from roadmapdb.config import config
from roadmapdb.db import Database
from roadmapdb.record.bootstrap import BootstrapGate, BootstrapReport
from roadmapdb.record.codec import ValueCodec
from roadmapdb.record.columns import ColumnPolicy
from roadmapdb.record.query import QueryBuilder, QuerySpec

logger = logging.getLogger(__name__)

INVALID_ID = -1

# Placeholder owner for anonymous activity, created by the bootstrap
UNKNOWN_OWNER_ID = -1
UNKNOWN_OWNER = {
    "id": UNKNOWN_OWNER_ID,
    "name": "Unknown User",
    "email": "unknown@roadmapdb.invalid",
}


class RecordStore:
    """
    Flat key/value access to every table in the allow-list.

    Usage:
        async with RecordStore(Database()) as store:
            roadmap_id = await store.insert("roadmaps", {"name": "Rust", "user_id": 7})
            roadmap = await store.get("roadmaps", roadmap_id)
    """

    def __init__(
        self,
        database: Database,
        gate: Optional[BootstrapGate] = None,
        policy: Optional[ColumnPolicy] = None,
        codec: Optional[ValueCodec] = None,
    ):
        self.database = database
        self.gate = gate or BootstrapGate.from_script(
            config.setup_sql_path, strict=config.strict_bootstrap
        )
        self.codec = codec or ValueCodec()
        self.builder = QueryBuilder(
            policy or ColumnPolicy.default(per_table=config.strict_columns), self.codec
        )

    async def __aenter__(self) -> "RecordStore":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def start(self) -> BootstrapReport:
        """Run the bootstrap now instead of on the first operation."""
        return await self.gate.wait(self.database, seed=self._seed_unknown_owner)

    async def close(self) -> None:
        await self.database.close()

    async def _seed_unknown_owner(self) -> None:
        # Runs inside the bootstrap, so it must not wait on the gate
        lookup = self.builder.select_by_id("users", UNKNOWN_OWNER_ID)
        update = self.builder.update("users", UNKNOWN_OWNER_ID, UNKNOWN_OWNER)
        insert = self.builder.insert("users", UNKNOWN_OWNER, keep_id=True)
        if lookup is None or update is None or insert is None:
            logger.warning("Skipping unknown owner seed: users columns are not allowed")
            return

        if await self._fetch_one(lookup):
            await self._run(update)
        else:
            await self._run(insert)

    # =========================================================================
    # Statement execution
    # =========================================================================

    async def _run(self, spec: QuerySpec):
        sql, params = spec.render()
        return await self.database.execute(sql, params)

    async def _fetch_one(self, spec: Optional[QuerySpec]) -> Optional[dict]:
        if spec is None:
            return None
        result = await self._run(spec)
        return self.codec.decode(result.rows[0]) if result.rows else None

    async def _fetch_all(self, spec: Optional[QuerySpec]) -> Optional[List[dict]]:
        if spec is None:
            return None
        result = await self._run(spec)
        return [self.codec.decode(row) for row in result.rows]

    async def _count(self, spec: Optional[QuerySpec]) -> int:
        if spec is None:
            return 0
        result = await self._run(spec)
        return int(result.rows[0]["count"]) if result.rows else 0

    # =========================================================================
    # Writes
    # =========================================================================

    async def insert(self, table: str, record: Mapping[str, Any], keep_id: bool = False) -> int:
        """
        Insert a record and return its new id.

        ``id`` in the record is ignored unless keep_id is set. Returns
        INVALID_ID if the table or any column is not allowed.
        """
        await self.start()
        spec = self.builder.insert(table, record, keep_id=keep_id)
        if spec is None:
            return INVALID_ID
        result = await self._run(spec)
        return int(result.rows[0]["id"]) if result.rows else INVALID_ID

    async def update(self, table: str, record_id: int, record: Mapping[str, Any]) -> bool:
        """Update the named columns of one record. True if a row changed."""
        await self.start()
        spec = self.builder.update(table, record_id, record)
        if spec is None:
            return False
        result = await self._run(spec)
        return result.rowcount > 0

    async def delete(self, table: str, record_id: int) -> bool:
        """Delete one record. True if a row was removed."""
        await self.start()
        spec = self.builder.delete(table, record_id)
        if spec is None:
            return False
        result = await self._run(spec)
        return result.rowcount > 0

    # =========================================================================
    # Reads
    # =========================================================================

    async def get(self, table: str, record_id: int) -> Optional[dict]:
        """Get a record by id."""
        await self.start()
        return await self._fetch_one(self.builder.select_by_id(table, record_id))

    async def get_where(self, table: str, *pairs: Any) -> Optional[dict]:
        """
        Get the first record matching every column/value pair.

        Usage:
            await store.get_where("roadmap_likes", "roadmap_id", 3, "user_id", 7)
        """
        await self.start()
        return await self._fetch_one(self.builder.select_where(table, pairs, first=True))

    async def get_all_where(self, table: str, *pairs: Any) -> Optional[List[dict]]:
        """
        Get all records matching every column/value pair, in id order.

        Returns an empty list when nothing matches and None when the pairs
        are malformed or not allowed.
        """
        await self.start()
        return await self._fetch_all(self.builder.select_where(table, pairs))

    async def get_where_like(self, table: str, *pairs: Any) -> Optional[dict]:
        """Like get_where, but values are LIKE patterns."""
        await self.start()
        return await self._fetch_one(
            self.builder.select_where(table, pairs, like=True, first=True)
        )

    async def get_all_where_like(self, table: str, *pairs: Any) -> Optional[List[dict]]:
        """Like get_all_where, but values are LIKE patterns."""
        await self.start()
        return await self._fetch_all(self.builder.select_where(table, pairs, like=True))

    async def count(self, table: str) -> int:
        await self.start()
        return await self._count(self.builder.count(table))

    async def count_where(self, table: str, *pairs: Any) -> int:
        """Count records matching every column/value pair. 0 for malformed pairs."""
        await self.start()
        return await self._count(self.builder.count_where(table, pairs))

    async def count_where_like(self, table: str, *pairs: Any) -> int:
        await self.start()
        return await self._count(self.builder.count_where(table, pairs, like=True))
