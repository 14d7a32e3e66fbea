from typing import List, Optional

import aiosqlite

TOPIC_SIZE = 32

_COLUMNS = (
    "id, tx_hash, tx_index, height, contract_address, event_type, event_data, "
    "topics, indexed_at"
)


def pack_topics(topics: List[bytes]) -> bytes:
    return b"".join(topics)


def unpack_topics(blob: bytes) -> List[bytes]:
    return [blob[i:i + TOPIC_SIZE] for i in range(0, len(blob), TOPIC_SIZE)]


def _row_to_dict(row) -> dict:
    return {
        "id": row[0],
        "tx_hash": bytes(row[1]),
        "tx_index": row[2],
        "height": row[3],
        "contract_address": row[4],
        "event_type": row[5],
        "event_data": bytes(row[6]),
        "topics": unpack_topics(bytes(row[7])),
        "indexed_at": row[8],
    }


class EventRepo:
    """Contract events; topics are stored as one blob of 32-byte hashes."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def create(self, event_id: int, record: dict) -> dict:
        await self._db.execute(
            f"INSERT INTO events ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                event_id,
                record["tx_hash"],
                record["tx_index"],
                record["height"],
                record["contract_address"],
                record["event_type"],
                record["event_data"],
                pack_topics(record["topics"]),
                record["indexed_at"],
            ),
        )
        return dict(record, id=event_id)

    async def get(self, event_id: int) -> Optional[dict]:
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM events WHERE id = ?", (event_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_dict(row) if row else None

    async def count(self) -> int:
        async with self._db.execute("SELECT COUNT(*) FROM events") as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0
