"""
auth.py - API key authentication.

Every ledger identity (indexer, reader, owner) is an account. Callers pass
their key in the X-API-Key header; resolve_account() maps it back to the
account, whose account_id is the caller identity used by every service.
"""

import logging
import secrets
from typing import TYPE_CHECKING, Optional

from fastapi import Header, HTTPException

if TYPE_CHECKING:
    from indexhub.account import AccountService

logger = logging.getLogger("auth")


class AuthService:
    """API key issuing and resolution."""

    def __init__(self, accounts: "AccountService"):
        self._accounts = accounts

    @staticmethod
    def generate_api_key() -> str:
        return secrets.token_hex(16)

    async def register(self, account_id: str, balance: int = 0) -> dict:
        if not account_id:
            raise ValueError("account_id must not be empty")
        api_key = self.generate_api_key()
        acct = await self._accounts.create_account(account_id, balance=balance, api_key=api_key)
        logger.info("Registered account %s", account_id)
        return acct

    async def issue_key(self, account_id: str) -> str:
        """Return the account's key, creating one for accounts that have none."""
        return await self._accounts.ensure_api_key(account_id, self.generate_api_key())

    async def resolve_account(self, x_api_key: str = Header(default="")) -> Optional[dict]:
        """Resolve an API key to its account. Returns None if no credentials."""
        if not x_api_key:
            return None
        return await self._accounts.get_by_api_key(x_api_key)

    async def get_current_account(self, x_api_key: str = Header(default="")) -> dict:
        acct = await self.resolve_account(x_api_key)
        if acct is None:
            raise HTTPException(
                status_code=401,
                detail="Missing or invalid credentials. Pass the X-API-Key header.",
            )
        return acct
