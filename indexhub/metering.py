"""
metering.py - Query metering engine.

Every metered query goes through the same steps inside one storage
transaction:

  1. paused?                     -> NotAuthorized
  2. rate limit for the slot     -> RateLimitExceeded
  3. query-specific validation   -> InvalidTimeRange / TooManyResults
  4. fee transfer to treasury    -> InsufficientPayment
  5. per-reader stats update

The engine returns query descriptors (id and result count); fetching the
data itself happens elsewhere. The result cache stores digests keyed by a
20-byte hash of (query type, parameters) and expires entries after
CACHE_LIFETIME slots.
"""

import hashlib
import logging
from typing import TYPE_CHECKING, Optional

from indexhub import fields
from indexhub.account import FEE_TREASURY_ACCOUNT
from indexhub.errors import (
    InvalidTimeRange,
    NotAuthorized,
    RateLimitExceeded,
    TooManyResults,
)
from indexhub.storage import empty_activity, empty_stats

if TYPE_CHECKING:
    from indexhub.account import AccountService
    from indexhub.clock import Clock
    from indexhub.registry import IndexerRegistry
    from indexhub.storage import StorageManager

logger = logging.getLogger("metering")

QUERY_FEE = 100_000
PREMIUM_QUERY_FEE = 500_000
RATE_LIMIT_PER_SLOT = 10
MAX_RESULTS_PER_QUERY = 100
CACHE_LIFETIME = 144

DIGEST_SIZE = 20
QUERY_TYPE_BYTES = 16
MAX_QUERY_TYPE = (1 << (8 * QUERY_TYPE_BYTES)) - 1


def query_digest(query_type: int, parameters: bytes) -> bytes:
    """20-byte cache key over the 16-byte big-endian query type and the raw parameters."""
    fields.check_uint(query_type, "query_type", max_value=MAX_QUERY_TYPE)
    fields.check_blob(parameters, "parameters", fields.MAX_QUERY_PARAMETERS)
    data = query_type.to_bytes(QUERY_TYPE_BYTES, "big") + bytes(parameters)
    return hashlib.blake2b(data, digest_size=DIGEST_SIZE).digest()


def within_rate_limit(stats: dict, slot: int) -> bool:
    return not (
        stats["last_query_slot"] == slot
        and stats["queries_this_slot"] >= RATE_LIMIT_PER_SLOT
    )


class QueryMeteringEngine:
    """Rate limiting, fee charging, per-reader stats and the result cache."""

    def __init__(
        self,
        storage: "StorageManager",
        accounts: "AccountService",
        clock: "Clock",
        registry: Optional["IndexerRegistry"] = None,
    ):
        self._storage = storage
        self._accounts = accounts
        self._clock = clock
        self._registry = registry

    # -------------------------------------------------------------------
    # Fees, rate limit, stats
    # -------------------------------------------------------------------

    async def current_fees(self) -> dict:
        async with self._storage.read():
            return {
                "basic_query_fee": await self._storage.state.get("basic_query_fee", QUERY_FEE),
                "premium_query_fee": await self._storage.state.get(
                    "premium_query_fee", PREMIUM_QUERY_FEE
                ),
            }

    async def check_rate_limit(self, identity: str, slot: Optional[int] = None) -> bool:
        """True while `identity` may still query in the slot."""
        if slot is None:
            slot = self._clock.now()
        async with self._storage.read():
            stats = await self._storage.query_stats.get(identity) or empty_stats(identity)
        return within_rate_limit(stats, slot)

    async def charge_and_record(
        self, identity: str, fee: int, premium: bool, success: bool, slot: int,
    ) -> dict:
        """Move the fee to the treasury and fold the query into the reader's stats.

        Must run inside a storage transaction; a failed transfer aborts the
        whole call.
        """
        await self._accounts.transfer(identity, FEE_TREASURY_ACCOUNT, fee, memo="query-fee")

        stats = await self._storage.query_stats.get(identity) or empty_stats(identity)
        same_slot = stats["last_query_slot"] == slot
        updated = dict(
            stats,
            total_queries=stats["total_queries"] + 1,
            successful_queries=stats["successful_queries"] + (1 if success else 0),
            failed_queries=stats["failed_queries"] + (0 if success else 1),
            premium_queries=stats["premium_queries"] + (1 if premium else 0),
            last_query_slot=slot,
            queries_this_slot=stats["queries_this_slot"] + 1 if same_slot else 1,
            total_fees_paid=fields.checked_add(stats["total_fees_paid"], fee, "total_fees_paid"),
        )
        await self._storage.query_stats.put(updated)
        return updated

    async def get_user_query_stats(self, identity: str) -> dict:
        async with self._storage.read():
            return await self._storage.query_stats.get(identity) or empty_stats(identity)

    async def _admit(self, identity: str, slot: int):
        if await self._storage.state.get("paused"):
            raise NotAuthorized("Service is paused")
        if not await self.check_rate_limit(identity, slot):
            raise RateLimitExceeded(
                f"{identity} reached {RATE_LIMIT_PER_SLOT} queries in slot {slot}"
            )

    # -------------------------------------------------------------------
    # Metered queries
    # -------------------------------------------------------------------

    async def query_blocks_by_height_range(self, reader: str, start: int, end: int) -> dict:
        fields.check_uint(start, "start_height")
        fields.check_uint(end, "end_height")
        slot = self._clock.now()
        async with self._storage.transaction():
            await self._admit(reader, slot)
            if start > end:
                raise InvalidTimeRange(f"start height {start} is above end height {end}")
            if end - start > MAX_RESULTS_PER_QUERY:
                raise TooManyResults(
                    f"range of {end - start} exceeds {MAX_RESULTS_PER_QUERY} blocks"
                )
            fee = await self._storage.state.get("basic_query_fee", QUERY_FEE)
            await self.charge_and_record(reader, fee, premium=False, success=True, slot=slot)
            await self._storage.state.increment("total_queries_processed")
            query_id = await self._storage.state.next_id("next_query_id")

        logger.info("Query %d: blocks %d..%d for %s (fee=%d)", query_id, start, end, reader, fee)
        return {"query_id": query_id, "result_count": end - start}

    async def premium_query(
        self, reader: str, query_type: int, parameters: bytes, max_results: int,
    ) -> dict:
        fields.check_uint(query_type, "query_type", max_value=MAX_QUERY_TYPE)
        fields.check_blob(parameters, "parameters", fields.MAX_QUERY_PARAMETERS)
        fields.check_uint(max_results, "max_results")
        slot = self._clock.now()
        async with self._storage.transaction():
            await self._admit(reader, slot)
            if max_results > MAX_RESULTS_PER_QUERY:
                raise TooManyResults(
                    f"max_results {max_results} exceeds {MAX_RESULTS_PER_QUERY}"
                )
            fee = await self._storage.state.get("premium_query_fee", PREMIUM_QUERY_FEE)
            await self.charge_and_record(reader, fee, premium=True, success=True, slot=slot)
            query_id = await self._storage.state.next_id("next_query_id")

        logger.info("Query %d: premium type=%d for %s (fee=%d)", query_id, query_type, reader, fee)
        return {"query_id": query_id, "estimated_results": max_results}

    async def query_address_activity(self, reader: str, address: str) -> dict:
        """Metered lookup; unknown addresses get the zero record, which is not stored."""
        slot = self._clock.now()
        async with self._storage.transaction():
            await self._admit(reader, slot)
            fee = await self._storage.state.get("basic_query_fee", QUERY_FEE)
            await self.charge_and_record(reader, fee, premium=False, success=True, slot=slot)
            record = await self._storage.activity.get(address)
        return record or empty_activity(address)

    async def query_events(
        self,
        reader: str,
        contract: str,
        from_block: int,
        to_block: int,
        event_type: Optional[str] = None,
    ) -> dict:
        fields.check_uint(from_block, "from_block")
        fields.check_uint(to_block, "to_block")
        slot = self._clock.now()
        async with self._storage.transaction():
            await self._admit(reader, slot)
            if from_block > to_block:
                raise InvalidTimeRange(f"from_block {from_block} is above to_block {to_block}")
            fee = await self._storage.state.get("basic_query_fee", QUERY_FEE)
            await self.charge_and_record(reader, fee, premium=False, success=True, slot=slot)
        return {
            "contract": contract,
            "event_type": event_type,
            "from_block": from_block,
            "to_block": to_block,
        }

    async def query_token_transfers(
        self,
        reader: str,
        token: str,
        from_block: int,
        to_block: int,
        from_address: Optional[str] = None,
        to_address: Optional[str] = None,
    ) -> dict:
        fields.check_uint(from_block, "from_block")
        fields.check_uint(to_block, "to_block")
        slot = self._clock.now()
        async with self._storage.transaction():
            await self._admit(reader, slot)
            if from_block > to_block:
                raise InvalidTimeRange(f"from_block {from_block} is above to_block {to_block}")
            fee = await self._storage.state.get("basic_query_fee", QUERY_FEE)
            await self.charge_and_record(reader, fee, premium=False, success=True, slot=slot)
        return {
            "token": token,
            "from_address": from_address,
            "to_address": to_address,
            "from_block": from_block,
            "to_block": to_block,
        }

    async def query_contract_info(self, address: str) -> Optional[dict]:
        """Unmetered: no fee, no rate limit."""
        async with self._storage.read():
            return await self._storage.contracts.get(address)

    # -------------------------------------------------------------------
    # Result cache
    # -------------------------------------------------------------------

    async def cache_put(
        self,
        query_hash: bytes,
        result_digest: bytes,
        result_count: int,
        writer: Optional[str] = None,
    ) -> dict:
        """Store a result digest. When `writer` is given it must be an active indexer."""
        if len(query_hash) != DIGEST_SIZE:
            raise ValueError(f"query_hash must be exactly {DIGEST_SIZE} bytes")
        fields.check_hash(result_digest, "result_digest")
        fields.check_uint(result_count, "result_count")
        now = self._clock.now()
        expires_at = now + CACHE_LIFETIME
        async with self._storage.transaction():
            if writer is not None:
                await self._registry.require_active(writer)
            await self._storage.query_cache.put(
                bytes(query_hash), bytes(result_digest), result_count, now, expires_at,
            )
        logger.debug("Cached %s (%d results) until slot %d",
                     query_hash.hex(), result_count, expires_at)
        return {"query_hash": bytes(query_hash), "expires_at": expires_at}

    async def cache_get(self, query_hash: bytes) -> Optional[dict]:
        """The live entry for `query_hash`, or None once `now >= expires_at`."""
        now = self._clock.now()
        async with self._storage.transaction():
            entry = await self._storage.query_cache.get(bytes(query_hash))
            if entry is None or now >= entry["expires_at"]:
                return None
            await self._storage.query_cache.record_hit(bytes(query_hash))
        return dict(entry, hit_count=entry["hit_count"] + 1)
