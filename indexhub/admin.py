"""
admin.py - Owner-only administrative controls.

Fee parameters, indexer activity, treasury withdrawal, emergency pause and
analytics report requests. Every call checks caller == owner_id first.
"""

import logging
from typing import TYPE_CHECKING, Optional

from indexhub.account import FEE_TREASURY_ACCOUNT
from indexhub.errors import NotAuthorized

if TYPE_CHECKING:
    from indexhub.account import AccountService
    from indexhub.clock import Clock
    from indexhub.registry import IndexerRegistry
    from indexhub.storage import StorageManager

logger = logging.getLogger("admin")

MAX_METRIC_TYPE = 32


class AdminController:

    def __init__(
        self,
        storage: "StorageManager",
        accounts: "AccountService",
        registry: "IndexerRegistry",
        clock: "Clock",
        owner_id: str,
    ):
        self._storage = storage
        self._accounts = accounts
        self._registry = registry
        self._clock = clock
        self.owner_id = owner_id

    def _require_owner(self, caller: str, action: str):
        if caller != self.owner_id:
            logger.warning("Rejected %s by non-owner %s", action, caller)
            raise NotAuthorized(f"Only the owner can {action}")

    async def toggle_indexer(self, caller: str, identity: str) -> bool:
        self._require_owner(caller, "toggle indexer status")
        return await self._registry.toggle_active(caller, identity)

    async def update_fees(self, caller: str, basic_fee: int, premium_fee: int) -> dict:
        self._require_owner(caller, "update fees")
        for name, value in (("basic_fee", basic_fee), ("premium_fee", premium_fee)):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} must be a non-negative integer")
        async with self._storage.transaction():
            await self._storage.state.set("basic_query_fee", basic_fee)
            await self._storage.state.set("premium_query_fee", premium_fee)
        logger.info("Fees updated: basic=%d premium=%d", basic_fee, premium_fee)
        return {"basic_query_fee": basic_fee, "premium_query_fee": premium_fee}

    async def withdraw_fees(self, caller: str, amount: int) -> int:
        """Move `amount` from the fee treasury to the owner. Returns the owner's new balance."""
        self._require_owner(caller, "withdraw fees")
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValueError("amount must be a positive integer")
        async with self._storage.transaction():
            await self._accounts.transfer(
                FEE_TREASURY_ACCOUNT, self.owner_id, amount, memo="fee-withdrawal",
            )
            acct = await self._storage.accounts.get(self.owner_id)
        logger.info("Withdrew %d from treasury to %s", amount, self.owner_id)
        return acct["balance"]

    async def set_paused(self, caller: str, paused: bool) -> bool:
        self._require_owner(caller, "pause the service")
        async with self._storage.transaction():
            await self._storage.state.set("paused", 1 if paused else 0)
        logger.warning("Service %s by %s", "PAUSED" if paused else "resumed", caller)
        return bool(paused)

    async def generate_analytics_report(self, caller: str, metric_type: str, time_period: int) -> dict:
        """Record a report request; report content is produced outside the service."""
        self._require_owner(caller, "request analytics reports")
        if not metric_type or len(metric_type) > MAX_METRIC_TYPE:
            raise ValueError(f"metric_type must be 1-{MAX_METRIC_TYPE} characters")
        if isinstance(time_period, bool) or not isinstance(time_period, int) or time_period < 0:
            raise ValueError("time_period must be a non-negative integer")
        now = self._clock.now()
        async with self._storage.transaction():
            await self._storage.analytics.request(metric_type, time_period, caller, now)
            report = await self._storage.analytics.get(metric_type)
        logger.info("Analytics report requested: %s over %d slots", metric_type, time_period)
        return report

    async def get_system_analytics(self, caller: str, metric_type: Optional[str] = None) -> dict:
        self._require_owner(caller, "read system analytics")
        async with self._storage.read():
            state = await self._storage.state.snapshot()
            result = {
                "indexers": await self._storage.indexers.count(),
                "active_indexers": await self._storage.indexers.count(active=True),
                "blocks": await self._storage.blocks.count(),
                "transactions": await self._storage.transactions.count(),
                "events": await self._storage.events.count(),
                "token_transfers": await self._storage.token_transfers.count(),
                "contracts": await self._storage.contracts.count(),
                "addresses": await self._storage.activity.count(),
                "current_indexed_height": state["current_indexed_height"],
                "total_queries_processed": state["total_queries_processed"],
                "treasury_balance": await self._accounts.balance_of(FEE_TREASURY_ACCOUNT),
                "paused": bool(state["paused"]),
            }
            if metric_type is not None:
                result["report"] = await self._storage.analytics.get(metric_type)
        return result
