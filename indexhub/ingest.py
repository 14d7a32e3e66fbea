"""
ingest.py - Ingestion pipeline.

Validates indexer submissions and commits them into the derived indexes:

  index_block            registered + active indexer, height strictly above
                         the indexer's last accepted height
  index_transaction      registered indexer, block at `height` must exist
  index_event            registered indexer
  index_token_transfer   registered indexer, own id sequence
  index_contract         registered indexer, upsert by contract address
  batch_index_transactions
                         up to 50 transactions, all-or-nothing

Each call is one storage transaction: every precondition is checked before
the first write, and any error rolls the whole call back.
"""

import logging
from typing import TYPE_CHECKING, Iterable, List, Optional

from indexhub import fields
from indexhub.errors import InvalidBlock, InvalidBlockSequence, NotAuthorized, TooManyResults
from indexhub.registry import next_reputation
from indexhub.storage import empty_activity
from indexhub.storage.activity import MAX_TOKENS_HELD

if TYPE_CHECKING:
    from indexhub.clock import Clock
    from indexhub.registry import IndexerRegistry
    from indexhub.storage import StorageManager

logger = logging.getLogger("ingest")

MAX_BATCH_SIZE = 50

TRANSACTION_FIELDS = (
    "tx_hash", "height", "tx_type", "sender", "recipient", "amount", "fee", "nonce",
    "contract_address", "function_name", "success", "error_code", "events_count",
)


class IngestionPipeline:
    """Commits indexer-submitted records into the derived index store."""

    def __init__(self, storage: "StorageManager", registry: "IndexerRegistry", clock: "Clock"):
        self._storage = storage
        self._registry = registry
        self._clock = clock

    # -------------------------------------------------------------------
    # Blocks
    # -------------------------------------------------------------------

    async def index_block(
        self,
        indexer: str,
        height: int,
        block_hash: bytes,
        parent_hash: bytes,
        timestamp: int,
        miner: Optional[str] = None,
        tx_count: int = 0,
        total_fees: int = 0,
        size: int = 0,
        difficulty: int = 0,
    ) -> int:
        record = {
            "height": fields.check_uint(height, "height"),
            "block_hash": fields.check_hash(block_hash, "block_hash"),
            "parent_hash": fields.check_hash(parent_hash, "parent_hash"),
            "timestamp": fields.check_uint(timestamp, "timestamp"),
            "miner": fields.check_text(miner, "miner", 256, required=False),
            "tx_count": fields.check_uint(tx_count, "tx_count"),
            "total_fees": fields.check_uint(total_fees, "total_fees"),
            "size": fields.check_uint(size, "size"),
            "difficulty": fields.check_uint(difficulty, "difficulty"),
        }
        now = self._clock.now()
        async with self._storage.transaction():
            await self._ensure_running()
            indexer_record = await self._registry.require_active(indexer)
            if height <= indexer_record["last_indexed_height"]:
                raise InvalidBlockSequence(
                    f"height {height} is not above last indexed height "
                    f"{indexer_record['last_indexed_height']} for {indexer}"
                )

            block_id = await self._storage.state.next_id("next_block_id")
            await self._storage.blocks.create(
                block_id, dict(record, indexed_by=indexer, indexed_at=now),
            )
            await self._storage.indexers.save(dict(
                indexer_record,
                blocks_indexed=indexer_record["blocks_indexed"] + 1,
                last_indexed_height=height,
                reputation_score=next_reputation(indexer_record["reputation_score"], True),
            ))
            await self._storage.state.raise_to("current_indexed_height", height)

        logger.info("Indexed block %d at height %d (by %s)", block_id, height, indexer)
        return block_id

    # -------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------

    async def index_transaction(
        self,
        indexer: str,
        tx_hash: bytes,
        height: int,
        tx_type: str,
        sender: str,
        recipient: Optional[str] = None,
        amount: Optional[int] = None,
        fee: int = 0,
        nonce: int = 0,
        contract_address: Optional[str] = None,
        function_name: Optional[str] = None,
        success: bool = True,
        error_code: Optional[int] = None,
        events_count: int = 0,
    ) -> int:
        record = self._transaction_record(
            tx_hash=tx_hash, height=height, tx_type=tx_type, sender=sender,
            recipient=recipient, amount=amount, fee=fee, nonce=nonce,
            contract_address=contract_address, function_name=function_name,
            success=success, error_code=error_code, events_count=events_count,
        )
        now = self._clock.now()
        async with self._storage.transaction():
            await self._ensure_running()
            # Registration only: inactive indexers may still submit transactions.
            await self._registry.require_registered(indexer)
            tx_id = await self._commit_transaction(record, now)

        logger.debug("Indexed transaction %d at height %d (by %s)", tx_id, height, indexer)
        return tx_id

    async def batch_index_transactions(self, indexer: str, items: Iterable[dict]) -> int:
        """Index up to 50 transactions in one all-or-nothing call; returns the count."""
        items = list(items)
        if len(items) > MAX_BATCH_SIZE:
            raise TooManyResults(f"batch of {len(items)} exceeds {MAX_BATCH_SIZE} transactions")
        records = []
        for item in items:
            unknown = set(item) - set(TRANSACTION_FIELDS)
            if unknown:
                raise ValueError(f"unknown transaction fields: {', '.join(sorted(unknown))}")
            records.append(self._transaction_record(**item))

        now = self._clock.now()
        async with self._storage.transaction():
            await self._ensure_running()
            await self._registry.require_registered(indexer)
            ids = [await self._commit_transaction(r, now) for r in records]

        logger.info("Batch-indexed %d transactions (by %s, ids=%s)", len(ids), indexer,
                    f"{ids[0]}-{ids[-1]}" if ids else "none")
        return len(ids)

    def _transaction_record(
        self,
        tx_hash: bytes,
        height: int,
        tx_type: str,
        sender: str,
        recipient: Optional[str] = None,
        amount: Optional[int] = None,
        fee: int = 0,
        nonce: int = 0,
        contract_address: Optional[str] = None,
        function_name: Optional[str] = None,
        success: bool = True,
        error_code: Optional[int] = None,
        events_count: int = 0,
    ) -> dict:
        return {
            "tx_hash": fields.check_hash(tx_hash, "tx_hash"),
            "height": fields.check_uint(height, "height"),
            "tx_type": fields.check_text(tx_type, "tx_type", fields.MAX_TYPE_TAG),
            "sender": fields.check_text(sender, "sender", 256),
            "recipient": recipient,
            "amount": fields.check_uint(amount, "amount"),
            "fee": fields.check_uint(fee, "fee"),
            "nonce": fields.check_uint(nonce, "nonce"),
            "contract_address": contract_address,
            "function_name": fields.check_text(
                function_name, "function_name", fields.MAX_FUNCTION_NAME, required=False,
            ),
            "success": bool(success),
            "error_code": fields.check_uint(error_code, "error_code"),
            "events_count": fields.check_uint(events_count, "events_count"),
        }

    async def _commit_transaction(self, record: dict, now: int) -> int:
        """Reference check plus all writes for one transaction (inside a storage transaction)."""
        height = record["height"]
        if not await self._storage.blocks.exists_at_height(height):
            raise InvalidBlock(f"no indexed block at height {height}")

        tx_id = await self._storage.state.next_id("next_transaction_id")
        await self._storage.transactions.create(tx_id, dict(record, indexed_at=now))

        await self.update_address_activity(record["sender"], height, record["amount"], True)
        if record["recipient"] is not None:
            await self.update_address_activity(record["recipient"], height, record["amount"], False)
        if record["contract_address"] is not None:
            await self._record_contract_call(record["contract_address"], record["sender"], height)
        return tx_id

    async def update_address_activity(
        self, address: str, height: int, amount: Optional[int], is_sender: bool,
    ):
        """Fold one observed transaction into the address's activity record.

        The record is created on first observation. Must run inside a storage
        transaction.
        """
        existing = await self._storage.activity.get(address)
        if existing is None:
            existing = dict(empty_activity(address), first_seen_height=height)

        updated = dict(
            existing,
            last_seen_height=height,
            tx_count=existing["tx_count"] + 1,
        )
        if amount is not None:
            if is_sender:
                updated["sent_amount"] = fields.checked_add(
                    existing["sent_amount"], amount, "sent_amount"
                )
            else:
                updated["received_amount"] = fields.checked_add(
                    existing["received_amount"], amount, "received_amount"
                )
        await self._storage.activity.put(updated)

    async def _record_contract_call(self, contract_address: str, caller: str, height: int):
        contract = await self._storage.contracts.get(contract_address)
        if contract is None:
            return
        first_call = await self._storage.contracts.add_caller(contract_address, caller)
        await self._storage.contracts.put(dict(
            contract,
            total_calls=contract["total_calls"] + 1,
            unique_callers=contract["unique_callers"] + (1 if first_call else 0),
            last_call_height=max(contract["last_call_height"], height),
        ))
        activity = await self._storage.activity.get(caller)
        if activity is not None:
            await self._storage.activity.put(
                dict(activity, contract_calls=activity["contract_calls"] + 1)
            )

    # -------------------------------------------------------------------
    # Events, token transfers, contracts
    # -------------------------------------------------------------------

    async def index_event(
        self,
        indexer: str,
        tx_hash: bytes,
        tx_index: int,
        height: int,
        contract_address: str,
        event_type: str,
        event_data: bytes,
        topics: List[bytes],
    ) -> int:
        record = {
            "tx_hash": fields.check_hash(tx_hash, "tx_hash"),
            "tx_index": fields.check_uint(tx_index, "tx_index"),
            "height": fields.check_uint(height, "height"),
            "contract_address": fields.check_text(contract_address, "contract_address", 256),
            "event_type": fields.check_text(event_type, "event_type", fields.MAX_EVENT_TYPE),
            "event_data": fields.check_blob(event_data, "event_data", fields.MAX_EVENT_DATA) or b"",
            "topics": fields.check_topics(topics),
        }
        now = self._clock.now()
        async with self._storage.transaction():
            await self._ensure_running()
            await self._registry.require_registered(indexer)
            event_id = await self._storage.state.next_id("next_event_id")
            await self._storage.events.create(event_id, dict(record, indexed_at=now))

        logger.debug("Indexed event %d (%s on %s)", event_id, event_type, contract_address)
        return event_id

    async def index_token_transfer(
        self,
        indexer: str,
        tx_hash: bytes,
        height: int,
        token_contract: str,
        from_address: str,
        to_address: str,
        amount: int,
        transfer_type: str,
        memo: Optional[bytes] = None,
    ) -> int:
        record = {
            "tx_hash": fields.check_hash(tx_hash, "tx_hash"),
            "height": fields.check_uint(height, "height"),
            "token_contract": fields.check_text(token_contract, "token_contract", 256),
            "from_address": fields.check_text(from_address, "from_address", 256),
            "to_address": fields.check_text(to_address, "to_address", 256),
            "amount": fields.check_uint(amount, "amount"),
            "memo": fields.check_blob(memo, "memo", fields.MAX_MEMO),
            "transfer_type": fields.check_text(transfer_type, "transfer_type", fields.MAX_TYPE_TAG),
        }
        now = self._clock.now()
        async with self._storage.transaction():
            await self._ensure_running()
            await self._registry.require_registered(indexer)
            transfer_id = await self._storage.state.next_id("next_transfer_id")
            await self._storage.token_transfers.create(transfer_id, dict(record, indexed_at=now))

            holder = await self._storage.activity.get(to_address)
            if holder is not None:
                tokens = holder["tokens_held"]
                if token_contract not in tokens and len(tokens) < MAX_TOKENS_HELD:
                    await self._storage.activity.put(
                        dict(holder, tokens_held=tokens + [token_contract])
                    )

        logger.debug("Indexed token transfer %d (%s: %s -> %s)",
                     transfer_id, token_contract, from_address, to_address)
        return transfer_id

    async def index_contract(
        self,
        indexer: str,
        contract_address: str,
        deployer: str,
        name: str,
        deployed_at_height: int,
        source_hash: bytes,
        contract_type: str,
        deployed_at_time: Optional[int] = None,
    ) -> dict:
        fields.check_text(contract_address, "contract_address", 256)
        fields.check_text(deployer, "deployer", 256)
        fields.check_text(name, "name", fields.MAX_NAME)
        fields.check_uint(deployed_at_height, "deployed_at_height")
        fields.check_hash(source_hash, "source_hash")
        fields.check_text(contract_type, "contract_type", fields.MAX_TYPE_TAG)
        fields.check_uint(deployed_at_time, "deployed_at_time")

        now = self._clock.now()
        async with self._storage.transaction():
            await self._ensure_running()
            await self._registry.require_registered(indexer)
            existing = await self._storage.contracts.get(contract_address)
            base = existing or {
                "total_calls": 0,
                "unique_callers": 0,
                "last_call_height": deployed_at_height,
                "active": True,
            }
            record = dict(
                base,
                contract_address=contract_address,
                deployer=deployer,
                name=name,
                deployed_at_height=deployed_at_height,
                deployed_at_time=deployed_at_time if deployed_at_time is not None else now,
                source_hash=bytes(source_hash),
                contract_type=contract_type,
            )
            await self._storage.contracts.put(record)

            if existing is None:
                activity = await self._storage.activity.get(deployer)
                if activity is not None:
                    await self._storage.activity.put(
                        dict(activity, contracts_deployed=activity["contracts_deployed"] + 1)
                    )

        logger.info("%s contract %s (%s) by %s",
                    "Updated" if existing else "Indexed", contract_address, name, deployer)
        return record

    # -------------------------------------------------------------------
    # Read-only lookups
    # -------------------------------------------------------------------

    async def get_block(self, block_id: int) -> Optional[dict]:
        async with self._storage.read():
            return await self._storage.blocks.get(block_id)

    async def get_block_by_height(self, height: int) -> Optional[dict]:
        async with self._storage.read():
            return await self._storage.blocks.get_by_height(height)

    async def get_transaction(self, tx_id: int) -> Optional[dict]:
        async with self._storage.read():
            return await self._storage.transactions.get(tx_id)

    async def get_event(self, event_id: int) -> Optional[dict]:
        async with self._storage.read():
            return await self._storage.events.get(event_id)

    async def get_token_transfer(self, transfer_id: int) -> Optional[dict]:
        async with self._storage.read():
            return await self._storage.token_transfers.get(transfer_id)

    async def get_status(self) -> dict:
        async with self._storage.read():
            state = await self._storage.state.snapshot()
        return {
            "current_indexed_height": state["current_indexed_height"],
            "total_blocks_indexed": state["next_block_id"] - 1,
            "total_transactions_indexed": state["next_transaction_id"] - 1,
            "total_events_indexed": state["next_event_id"] - 1,
            "total_token_transfers_indexed": state["next_transfer_id"] - 1,
            "total_queries_processed": state["total_queries_processed"],
            "current_slot": self._clock.now(),
            "paused": bool(state["paused"]),
        }

    async def _ensure_running(self):
        if await self._storage.state.get("paused"):
            raise NotAuthorized("Service is paused")
