from typing import List, Optional

import aiosqlite

_COLUMNS = (
    "indexer_id, name, indexer_type, bond_amount, active, blocks_indexed, "
    "last_indexed_height, reputation_score, registered_at"
)


def _row_to_dict(row) -> dict:
    return {
        "indexer_id": row[0],
        "name": row[1],
        "indexer_type": row[2],
        "bond_amount": row[3],
        "active": bool(row[4]),
        "blocks_indexed": row[5],
        "last_indexed_height": row[6],
        "reputation_score": row[7],
        "registered_at": row[8],
    }


class IndexerRepo:
    """CRUD operations for the indexers table."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def create(
        self,
        indexer_id: str,
        name: str,
        indexer_type: str,
        bond_amount: int,
        registered_at: int,
        reputation_score: int = 500,
    ) -> dict:
        await self._db.execute(
            f"INSERT INTO indexers ({_COLUMNS}) VALUES (?, ?, ?, ?, 1, 0, 0, ?, ?)",
            (indexer_id, name, indexer_type, bond_amount, reputation_score, registered_at),
        )
        return await self.get(indexer_id)

    async def get(self, indexer_id: str) -> Optional[dict]:
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM indexers WHERE indexer_id = ?", (indexer_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_dict(row) if row else None

    async def save(self, record: dict):
        """Write back every mutable field of a full indexer record."""
        await self._db.execute(
            "UPDATE indexers SET active = ?, blocks_indexed = ?, last_indexed_height = ?, "
            "reputation_score = ? WHERE indexer_id = ?",
            (
                int(record["active"]),
                record["blocks_indexed"],
                record["last_indexed_height"],
                record["reputation_score"],
                record["indexer_id"],
            ),
        )

    async def list_all(self) -> List[dict]:
        results = []
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM indexers ORDER BY registered_at, indexer_id"
        ) as cursor:
            async for row in cursor:
                results.append(_row_to_dict(row))
        return results

    async def count(self, active: Optional[bool] = None) -> int:
        if active is None:
            query, params = "SELECT COUNT(*) FROM indexers", ()
        else:
            query, params = "SELECT COUNT(*) FROM indexers WHERE active = ?", (int(active),)
        async with self._db.execute(query, params) as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0
