import json
from typing import Optional

import aiosqlite

MAX_TOKENS_HELD = 20

_COLUMNS = (
    "address, first_seen_height, last_seen_height, tx_count, sent_amount, received_amount, "
    "contract_calls, contracts_deployed, tokens_held_json, nft_count, address_type"
)


def empty_activity(address: str) -> dict:
    """Zero-value record returned for addresses that were never observed."""
    return {
        "address": address,
        "first_seen_height": 0,
        "last_seen_height": 0,
        "tx_count": 0,
        "sent_amount": 0,
        "received_amount": 0,
        "contract_calls": 0,
        "contracts_deployed": 0,
        "tokens_held": [],
        "nft_count": 0,
        "address_type": "standard",
    }


class ActivityRepo:
    """Per-address rolling aggregates."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def get(self, address: str) -> Optional[dict]:
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM address_activity WHERE address = ?", (address,)
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return {
            "address": row[0],
            "first_seen_height": row[1],
            "last_seen_height": row[2],
            "tx_count": row[3],
            "sent_amount": row[4],
            "received_amount": row[5],
            "contract_calls": row[6],
            "contracts_deployed": row[7],
            "tokens_held": json.loads(row[8]),
            "nft_count": row[9],
            "address_type": row[10],
        }

    async def put(self, record: dict):
        tokens = list(record["tokens_held"])[:MAX_TOKENS_HELD]
        await self._db.execute(
            f"INSERT INTO address_activity ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(address) DO UPDATE SET "
            "first_seen_height=excluded.first_seen_height, "
            "last_seen_height=excluded.last_seen_height, tx_count=excluded.tx_count, "
            "sent_amount=excluded.sent_amount, received_amount=excluded.received_amount, "
            "contract_calls=excluded.contract_calls, "
            "contracts_deployed=excluded.contracts_deployed, "
            "tokens_held_json=excluded.tokens_held_json, nft_count=excluded.nft_count, "
            "address_type=excluded.address_type",
            (
                record["address"],
                record["first_seen_height"],
                record["last_seen_height"],
                record["tx_count"],
                record["sent_amount"],
                record["received_amount"],
                record["contract_calls"],
                record["contracts_deployed"],
                json.dumps(tokens),
                record["nft_count"],
                record["address_type"],
            ),
        )

    async def count(self) -> int:
        async with self._db.execute("SELECT COUNT(*) FROM address_activity") as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0
