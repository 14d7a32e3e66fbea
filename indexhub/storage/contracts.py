from typing import Optional

import aiosqlite

_COLUMNS = (
    "contract_address, deployer, name, deployed_at_height, deployed_at_time, source_hash, "
    "total_calls, unique_callers, last_call_height, contract_type, active"
)


class ContractRepo:
    """Deployed contracts keyed by contract identity."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def get(self, contract_address: str) -> Optional[dict]:
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM contracts WHERE contract_address = ?",
            (contract_address,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return {
            "contract_address": row[0],
            "deployer": row[1],
            "name": row[2],
            "deployed_at_height": row[3],
            "deployed_at_time": row[4],
            "source_hash": bytes(row[5]),
            "total_calls": row[6],
            "unique_callers": row[7],
            "last_call_height": row[8],
            "contract_type": row[9],
            "active": bool(row[10]),
        }

    async def put(self, record: dict):
        """Insert or fully overwrite the record for its contract address."""
        await self._db.execute(
            f"INSERT INTO contracts ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(contract_address) DO UPDATE SET "
            "deployer=excluded.deployer, name=excluded.name, "
            "deployed_at_height=excluded.deployed_at_height, "
            "deployed_at_time=excluded.deployed_at_time, source_hash=excluded.source_hash, "
            "total_calls=excluded.total_calls, unique_callers=excluded.unique_callers, "
            "last_call_height=excluded.last_call_height, "
            "contract_type=excluded.contract_type, active=excluded.active",
            (
                record["contract_address"],
                record["deployer"],
                record["name"],
                record["deployed_at_height"],
                record["deployed_at_time"],
                record["source_hash"],
                record["total_calls"],
                record["unique_callers"],
                record["last_call_height"],
                record["contract_type"],
                int(record["active"]),
            ),
        )

    async def add_caller(self, contract_address: str, caller: str) -> bool:
        """Remember `caller` for the contract; True the first time it is seen."""
        cursor = await self._db.execute(
            "INSERT OR IGNORE INTO contract_callers (contract_address, caller) VALUES (?, ?)",
            (contract_address, caller),
        )
        return cursor.rowcount == 1

    async def count(self) -> int:
        async with self._db.execute("SELECT COUNT(*) FROM contracts") as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0
