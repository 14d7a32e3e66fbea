import logging
import time
from typing import Dict, List, Optional

import aiosqlite

logger = logging.getLogger("storage")


class InsufficientBalance(Exception):
    """Debit side of a transfer cannot cover the amount (or does not exist)."""


class AccountRepo:
    """Balances and API keys for ledger identities, plus the transfer log."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def create(self, account_id: str, balance: int = 0, api_key: str = "") -> Optional[dict]:
        now = time.time()
        await self._db.execute(
            "INSERT OR IGNORE INTO accounts (account_id, balance, api_key, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (account_id, balance, api_key, now, now),
        )
        return await self.get(account_id)

    async def get(self, account_id: str) -> Optional[dict]:
        async with self._db.execute(
            "SELECT account_id, balance, api_key, created_at, updated_at "
            "FROM accounts WHERE account_id = ?",
            (account_id,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return {
            "account_id": row[0],
            "balance": row[1],
            "api_key": row[2],
            "created_at": row[3],
            "updated_at": row[4],
        }

    async def get_by_api_key(self, api_key: str) -> Optional[dict]:
        if not api_key:
            return None
        async with self._db.execute(
            "SELECT account_id FROM accounts WHERE api_key = ? AND api_key != ''",
            (api_key,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return await self.get(row[0])

    async def set_api_key(self, account_id: str, api_key: str):
        await self._db.execute(
            "UPDATE accounts SET api_key = ?, updated_at = ? WHERE account_id = ?",
            (api_key, time.time(), account_id),
        )

    async def credit(self, account_id: str, amount: int, memo: str = ""):
        if amount <= 0:
            raise ValueError("Credit amount must be positive")
        now = time.time()
        cursor = await self._db.execute(
            "UPDATE accounts SET balance = balance + ?, updated_at = ? WHERE account_id = ?",
            (amount, now, account_id),
        )
        if cursor.rowcount == 0:
            raise KeyError(f"Account {account_id} not found")
        await self._record(account_id, account_id, amount, memo or "deposit", now)

    async def transfer(self, from_id: str, to_id: str, amount: int, memo: str = ""):
        """Move `amount` from one account to another.

        The debit is conditional on sufficient balance, so a failed transfer
        leaves both balances untouched. The destination is created on demand.
        """
        if amount <= 0:
            raise ValueError("Transfer amount must be positive")
        now = time.time()
        cursor = await self._db.execute(
            "UPDATE accounts SET balance = balance - ?, updated_at = ? "
            "WHERE account_id = ? AND balance >= ?",
            (amount, now, from_id, amount),
        )
        if cursor.rowcount == 0:
            raise InsufficientBalance(f"Insufficient balance or account {from_id} not found")
        await self._db.execute(
            "INSERT OR IGNORE INTO accounts (account_id, balance, api_key, created_at, updated_at) "
            "VALUES (?, 0, '', ?, ?)",
            (to_id, now, now),
        )
        await self._db.execute(
            "UPDATE accounts SET balance = balance + ?, updated_at = ? WHERE account_id = ?",
            (amount, now, to_id),
        )
        await self._record(from_id, to_id, amount, memo, now)

    async def list_all(self) -> Dict[str, dict]:
        result = {}
        async with self._db.execute(
            "SELECT account_id, balance, created_at FROM accounts ORDER BY account_id"
        ) as cursor:
            async for row in cursor:
                result[row[0]] = {
                    "account_id": row[0],
                    "balance": row[1],
                    "created_at": row[2],
                }
        return result

    async def list_transfers(self, account_id: str, limit: int = 50) -> List[dict]:
        results = []
        async with self._db.execute(
            "SELECT id, from_account, to_account, amount, memo, created_at FROM ledger_transfers "
            "WHERE from_account = ? OR to_account = ? ORDER BY id DESC LIMIT ?",
            (account_id, account_id, limit),
        ) as cursor:
            async for row in cursor:
                results.append({
                    "id": row[0],
                    "from": row[1],
                    "to": row[2],
                    "amount": row[3],
                    "memo": row[4],
                    "created_at": row[5],
                })
        return results

    async def _record(self, from_id: str, to_id: str, amount: int, memo: str, now: float):
        await self._db.execute(
            "INSERT INTO ledger_transfers (from_account, to_account, amount, memo, created_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (from_id, to_id, amount, memo, now),
        )
