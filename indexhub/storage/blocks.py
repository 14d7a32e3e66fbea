from typing import Optional

import aiosqlite

_COLUMNS = (
    "id, height, block_hash, parent_hash, timestamp, miner, tx_count, total_fees, "
    "size, difficulty, indexed_by, indexed_at"
)


def _row_to_dict(row) -> dict:
    return {
        "id": row[0],
        "height": row[1],
        "block_hash": bytes(row[2]),
        "parent_hash": bytes(row[3]),
        "timestamp": row[4],
        "miner": row[5],
        "tx_count": row[6],
        "total_fees": row[7],
        "size": row[8],
        "difficulty": row[9],
        "indexed_by": row[10],
        "indexed_at": row[11],
    }


class BlockRepo:
    """Block records keyed by sequence id, with a secondary height lookup."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def create(self, block_id: int, record: dict) -> dict:
        await self._db.execute(
            f"INSERT INTO blocks ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                block_id,
                record["height"],
                record["block_hash"],
                record["parent_hash"],
                record["timestamp"],
                record.get("miner"),
                record["tx_count"],
                record["total_fees"],
                record["size"],
                record["difficulty"],
                record["indexed_by"],
                record["indexed_at"],
            ),
        )
        return dict(record, id=block_id)

    async def get(self, block_id: int) -> Optional[dict]:
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM blocks WHERE id = ?", (block_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_dict(row) if row else None

    async def get_by_height(self, height: int) -> Optional[dict]:
        """First-committed block at `height` (several indexers may submit one)."""
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM blocks WHERE height = ? ORDER BY id LIMIT 1", (height,)
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_dict(row) if row else None

    async def exists_at_height(self, height: int) -> bool:
        async with self._db.execute(
            "SELECT 1 FROM blocks WHERE height = ? LIMIT 1", (height,)
        ) as cursor:
            row = await cursor.fetchone()
        return row is not None

    async def count(self, indexed_by: Optional[str] = None) -> int:
        if indexed_by:
            async with self._db.execute(
                "SELECT COUNT(*) FROM blocks WHERE indexed_by = ?", (indexed_by,)
            ) as cursor:
                row = await cursor.fetchone()
        else:
            async with self._db.execute("SELECT COUNT(*) FROM blocks") as cursor:
                row = await cursor.fetchone()
        return row[0] if row else 0
