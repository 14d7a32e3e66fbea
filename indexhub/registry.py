"""
registry.py - Indexer registry.

Tracks bonded indexers: identity, bond, activity flag, reputation and the
last block height each one indexed.

Reputation is a saturating counter in [0, 1000]:
 - every accepted block: +5, capped at 1000
 - a penalty: -10, floored at 0

Registration debits a fixed bond into escrow. Bonds are never refunded.
"""

import logging
from typing import TYPE_CHECKING, List, Optional

from indexhub.account import BOND_ESCROW_ACCOUNT
from indexhub.errors import AlreadyRegistered, IndexerNotRegistered, NotAuthorized

if TYPE_CHECKING:
    from indexhub.account import AccountService
    from indexhub.clock import Clock
    from indexhub.storage import StorageManager

logger = logging.getLogger("registry")

REGISTRATION_BOND = 20_000_000
INDEXER_TYPES = ("full", "specialized", "archive")
MAX_NAME_LENGTH = 64

INITIAL_REPUTATION = 500
MIN_REPUTATION = 0
MAX_REPUTATION = 1000
REPUTATION_REWARD = 5
REPUTATION_PENALTY = 10


def next_reputation(score: int, success: bool) -> int:
    if success:
        return min(MAX_REPUTATION, score + REPUTATION_REWARD)
    return max(MIN_REPUTATION, score - REPUTATION_PENALTY)


class IndexerRegistry:
    """Registration, activity toggling and reputation for indexers."""

    def __init__(
        self,
        storage: "StorageManager",
        accounts: "AccountService",
        clock: "Clock",
        owner_id: str,
    ):
        self._storage = storage
        self._indexers = storage.indexers
        self._accounts = accounts
        self._clock = clock
        self.owner_id = owner_id

    async def register(self, identity: str, name: str, indexer_type: str) -> dict:
        if not name or len(name) > MAX_NAME_LENGTH:
            raise ValueError(f"name must be 1-{MAX_NAME_LENGTH} characters")
        if indexer_type not in INDEXER_TYPES:
            raise ValueError(f"indexer_type must be one of {', '.join(INDEXER_TYPES)}")

        now = self._clock.now()
        async with self._storage.transaction():
            if await self._indexers.get(identity) is not None:
                raise AlreadyRegistered(f"Indexer '{identity}' is already registered")
            await self._accounts.transfer(
                identity, BOND_ESCROW_ACCOUNT, REGISTRATION_BOND, memo="indexer-bond",
            )
            record = await self._indexers.create(
                identity, name, indexer_type,
                bond_amount=REGISTRATION_BOND,
                registered_at=now,
                reputation_score=INITIAL_REPUTATION,
            )
        logger.info("Registered indexer %s (%s, type=%s) at slot %d",
                    identity, name, indexer_type, now)
        return record

    async def get(self, identity: str) -> Optional[dict]:
        async with self._storage.read():
            return await self._indexers.get(identity)

    async def list_indexers(self) -> List[dict]:
        async with self._storage.read():
            return await self._indexers.list_all()

    async def require_registered(self, identity: str) -> dict:
        """Return the indexer record or raise IndexerNotRegistered.

        Reads inside the caller's transaction when one is open, otherwise
        waits for committed state.
        """
        async with self._storage.read():
            record = await self._indexers.get(identity)
        if record is None:
            raise IndexerNotRegistered(f"'{identity}' is not a registered indexer")
        return record

    async def require_active(self, identity: str) -> dict:
        record = await self.require_registered(identity)
        if not record["active"]:
            raise NotAuthorized(f"Indexer '{identity}' is inactive")
        return record

    async def toggle_active(self, caller: str, identity: str) -> bool:
        """Flip an indexer's active flag (owner only). Returns the new flag."""
        if caller != self.owner_id:
            raise NotAuthorized("Only the owner can toggle indexer status")
        async with self._storage.transaction():
            record = await self.require_registered(identity)
            updated = dict(record, active=not record["active"])
            await self._indexers.save(updated)
        logger.info("Indexer %s active=%s (by %s)", identity, updated["active"], caller)
        return updated["active"]

    async def adjust_reputation(self, identity: str, success: bool) -> int:
        """Apply one reward or penalty step and return the new score."""
        async with self._storage.transaction():
            record = await self.require_registered(identity)
            score = next_reputation(record["reputation_score"], success)
            await self._indexers.save(dict(record, reputation_score=score))
        logger.debug("Indexer %s reputation %d -> %d", identity, record["reputation_score"], score)
        return score
