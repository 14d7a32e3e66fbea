from typing import Optional

import aiosqlite

_COLUMNS = (
    "id, tx_hash, height, tx_type, sender, recipient, amount, fee, nonce, "
    "contract_address, function_name, success, error_code, events_count, indexed_at"
)


def _row_to_dict(row) -> dict:
    return {
        "id": row[0],
        "tx_hash": bytes(row[1]),
        "height": row[2],
        "tx_type": row[3],
        "sender": row[4],
        "recipient": row[5],
        "amount": row[6],
        "fee": row[7],
        "nonce": row[8],
        "contract_address": row[9],
        "function_name": row[10],
        "success": bool(row[11]),
        "error_code": row[12],
        "events_count": row[13],
        "indexed_at": row[14],
    }


class TransactionRepo:
    """Indexed ledger transactions, keyed by sequence id."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def create(self, tx_id: int, record: dict) -> dict:
        await self._db.execute(
            f"INSERT INTO transactions ({_COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                tx_id,
                record["tx_hash"],
                record["height"],
                record["tx_type"],
                record["sender"],
                record.get("recipient"),
                record.get("amount"),
                record["fee"],
                record["nonce"],
                record.get("contract_address"),
                record.get("function_name"),
                int(record["success"]),
                record.get("error_code"),
                record["events_count"],
                record["indexed_at"],
            ),
        )
        return dict(record, id=tx_id)

    async def get(self, tx_id: int) -> Optional[dict]:
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM transactions WHERE id = ?", (tx_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_dict(row) if row else None

    async def count(self) -> int:
        async with self._db.execute("SELECT COUNT(*) FROM transactions") as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0
