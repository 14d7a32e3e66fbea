"""
account.py - Account service and value-transfer primitive.

Balances are integer minor units. `transfer()` is the opaque debit/credit
operation bonds and query fees go through: it either moves the full amount
or raises InsufficientPayment, and it always runs inside the caller's storage
transaction so a later failure in the same operation rolls it back.
"""

import logging
from typing import TYPE_CHECKING, Dict, List, Optional

from indexhub.errors import InsufficientPayment
from indexhub.storage import InsufficientBalance

if TYPE_CHECKING:
    from indexhub.storage import StorageManager

logger = logging.getLogger("account")

BOND_ESCROW_ACCOUNT = "bond-escrow"
FEE_TREASURY_ACCOUNT = "fee-treasury"
SYSTEM_ACCOUNTS = (BOND_ESCROW_ACCOUNT, FEE_TREASURY_ACCOUNT)


class AccountService:
    """Account service backed by SQLite via AccountRepo."""

    def __init__(self, storage: "StorageManager"):
        self._storage = storage
        self._repo = storage.accounts

    async def setup_defaults(self, owner_id: str = ""):
        """Create the escrow, treasury and owner accounts if they don't exist."""
        async with self._storage.transaction():
            for account_id in SYSTEM_ACCOUNTS:
                await self._repo.create(account_id)
            if owner_id:
                await self._repo.create(owner_id)

    async def create_account(self, account_id: str, balance: int = 0, api_key: str = "") -> dict:
        if account_id in SYSTEM_ACCOUNTS:
            raise ValueError(f"'{account_id}' is a reserved account id")
        async with self._storage.transaction():
            existing = await self._repo.get(account_id)
            if existing is not None:
                raise ValueError(f"Account '{account_id}' already exists")
            acct = await self._repo.create(account_id, balance=balance, api_key=api_key)
        logger.info("Created account %s balance=%d", account_id, balance)
        return acct

    async def get_account(self, account_id: str) -> Optional[dict]:
        async with self._storage.read():
            return await self._repo.get(account_id)

    async def balance_of(self, account_id: str) -> int:
        async with self._storage.read():
            acct = await self._repo.get(account_id)
        return acct["balance"] if acct else 0

    async def get_by_api_key(self, api_key: str) -> Optional[dict]:
        async with self._storage.read():
            return await self._repo.get_by_api_key(api_key)

    async def ensure_api_key(self, account_id: str, api_key: str) -> str:
        """Store `api_key` unless the account already has one. Returns the key in effect."""
        async with self._storage.transaction():
            acct = await self._repo.get(account_id)
            if acct is None:
                raise KeyError(f"Account '{account_id}' not found")
            if acct["api_key"]:
                return acct["api_key"]
            await self._repo.set_api_key(account_id, api_key)
        return api_key

    async def deposit(self, account_id: str, amount: int) -> dict:
        async with self._storage.transaction():
            await self._repo.credit(account_id, amount)
            acct = await self._repo.get(account_id)
        return acct

    async def transfer(self, from_id: str, to_id: str, amount: int, memo: str = ""):
        """Move `amount` inside the current transaction, or raise InsufficientPayment."""
        if amount == 0:
            return
        try:
            await self._repo.transfer(from_id, to_id, amount, memo=memo)
        except InsufficientBalance as e:
            logger.warning("Transfer %s -> %s of %d rejected: %s", from_id, to_id, amount, e)
            raise InsufficientPayment(str(e)) from e

    async def list_accounts(self) -> Dict[str, dict]:
        async with self._storage.read():
            return await self._repo.list_all()

    async def list_transfers(self, account_id: str, limit: int = 50) -> List[dict]:
        async with self._storage.read():
            return await self._repo.list_transfers(account_id, limit=limit)
