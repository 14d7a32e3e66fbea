from typing import Optional

import aiosqlite

_COLUMNS = (
    "id, tx_hash, height, token_contract, from_address, to_address, amount, memo, "
    "transfer_type, indexed_at"
)


class TokenTransferRepo:
    """Fungible/non-fungible token movements, with their own id sequence."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def create(self, transfer_id: int, record: dict) -> dict:
        await self._db.execute(
            f"INSERT INTO token_transfers ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                transfer_id,
                record["tx_hash"],
                record["height"],
                record["token_contract"],
                record["from_address"],
                record["to_address"],
                record["amount"],
                record.get("memo"),
                record["transfer_type"],
                record["indexed_at"],
            ),
        )
        return dict(record, id=transfer_id)

    async def get(self, transfer_id: int) -> Optional[dict]:
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM token_transfers WHERE id = ?", (transfer_id,)
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return {
            "id": row[0],
            "tx_hash": bytes(row[1]),
            "height": row[2],
            "token_contract": row[3],
            "from_address": row[4],
            "to_address": row[5],
            "amount": row[6],
            "memo": bytes(row[7]) if row[7] is not None else None,
            "transfer_type": row[8],
            "indexed_at": row[9],
        }

    async def count(self) -> int:
        async with self._db.execute("SELECT COUNT(*) FROM token_transfers") as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0
