"""
test_ingest.py - Unit tests for IngestionPipeline.

Covers block height monotonicity, reputation rewards, transaction
references, address activity aggregation, events, token transfers,
contracts, batch ingestion and rollback on failure.
"""

import asyncio

import pytest

from indexhub.errors import (
    IndexerNotRegistered,
    InvalidBlock,
    InvalidBlockSequence,
    NotAuthorized,
    TooManyResults,
)
from indexhub.fields import MAX_STORED_INT
from indexhub.ingest import MAX_BATCH_SIZE

from tests.helpers import (
    INDEXER,
    OWNER,
    block_fields,
    h32,
    index_block,
    register_indexer,
    tx_fields,
)

pytestmark = pytest.mark.asyncio


# ── Blocks ──────────────────────────────────────────────────────────────────

class TestIndexBlock:

    async def test_first_block(self, ingest, registry, indexer, clock):
        clock.set(7)
        block_id = await index_block(ingest, 1000)
        assert block_id == 1
        status = await ingest.get_status()
        assert status["current_indexed_height"] == 1000
        assert status["total_blocks_indexed"] == 1

        block = await ingest.get_block(1)
        assert block["height"] == 1000
        assert block["block_hash"] == h32(1000)
        assert block["indexed_by"] == INDEXER
        assert block["indexed_at"] == 7

        record = await registry.get(INDEXER)
        assert record["blocks_indexed"] == 1
        assert record["last_indexed_height"] == 1000

    async def test_heights_must_increase(self, ingest, registry, indexer):
        await index_block(ingest, 10)
        with pytest.raises(InvalidBlockSequence):
            await index_block(ingest, 10)
        with pytest.raises(InvalidBlockSequence):
            await index_block(ingest, 9)
        assert await index_block(ingest, 11) == 2
        assert (await registry.get(INDEXER))["blocks_indexed"] == 2

    async def test_height_zero_rejected_for_new_indexer(self, ingest, indexer):
        with pytest.raises(InvalidBlockSequence):
            await index_block(ingest, 0)

    async def test_rejected_block_changes_nothing(self, ingest, registry, storage, indexer):
        await index_block(ingest, 10)
        before = await registry.get(INDEXER)
        with pytest.raises(InvalidBlockSequence):
            await index_block(ingest, 5)
        assert await registry.get(INDEXER) == before
        assert await storage.state.get("next_block_id") == 2

    @pytest.mark.parametrize("n", [1, 3, 10])
    async def test_reputation_after_n_blocks(self, ingest, registry, indexer, n):
        for height in range(1, n + 1):
            await index_block(ingest, height)
        assert (await registry.get(INDEXER))["reputation_score"] == min(1000, 500 + 5 * n)

    async def test_reputation_saturates(self, ingest, registry, storage, indexer):
        record = await registry.get(INDEXER)
        await storage.indexers.save(dict(record, reputation_score=995))
        await index_block(ingest, 1)
        await index_block(ingest, 2)
        assert (await registry.get(INDEXER))["reputation_score"] == 1000

    async def test_unregistered_caller(self, ingest):
        with pytest.raises(IndexerNotRegistered):
            await index_block(ingest, 1, indexer="stranger")

    async def test_inactive_indexer(self, ingest, registry, indexer):
        await registry.toggle_active(OWNER, INDEXER)
        with pytest.raises(NotAuthorized):
            await index_block(ingest, 1)

    async def test_current_height_is_max_across_indexers(self, accounts, registry, ingest, indexer):
        await register_indexer(accounts, registry, identity="indexer-b")
        await index_block(ingest, 500)
        await index_block(ingest, 100, indexer="indexer-b")
        assert (await ingest.get_status())["current_indexed_height"] == 500

    async def test_same_height_from_two_indexers(self, accounts, registry, ingest, indexer):
        await register_indexer(accounts, registry, identity="indexer-b")
        first = await index_block(ingest, 50)
        second = await index_block(ingest, 50, indexer="indexer-b", block_hash=h32(999))
        assert (first, second) == (1, 2)
        assert (await ingest.get_block_by_height(50))["id"] == first

    async def test_hash_width_enforced(self, ingest, indexer):
        with pytest.raises(ValueError):
            await index_block(ingest, 1, block_hash=b"\x00" * 31)
        with pytest.raises(ValueError):
            await index_block(ingest, 1, parent_hash=b"\x00" * 33)

    async def test_optional_miner(self, ingest, indexer):
        block_id = await index_block(ingest, 1, miner=None)
        assert (await ingest.get_block(block_id))["miner"] is None

    async def test_miner_length_limit(self, ingest, indexer):
        with pytest.raises(ValueError):
            await index_block(ingest, 1, miner="m" * 257)
        assert await index_block(ingest, 1, miner="m" * 256) == 1

    async def test_paused_rejects(self, ingest, storage, indexer):
        await storage.state.set("paused", 1)
        with pytest.raises(NotAuthorized):
            await index_block(ingest, 1)


# ── Transactions and address activity ──────────────────────────────────────

class TestIndexTransaction:

    async def test_requires_indexed_block(self, ingest, indexer):
        with pytest.raises(InvalidBlock):
            await ingest.index_transaction(INDEXER, **tx_fields(1000))

    async def test_indexes_after_block(self, ingest, indexer, clock):
        await index_block(ingest, 1000)
        clock.advance(3)
        tx_id = await ingest.index_transaction(INDEXER, **tx_fields(1000))
        assert tx_id == 1
        tx = await ingest.get_transaction(1)
        assert tx["tx_hash"] == h32(10_001)
        assert tx["sender"] == "alice"
        assert tx["recipient"] == "bob"
        assert tx["success"] is True
        assert tx["indexed_at"] == 4

    async def test_block_from_other_indexer_is_enough(self, accounts, registry, ingest, indexer):
        await register_indexer(accounts, registry, identity="indexer-b")
        await index_block(ingest, 77, indexer="indexer-b")
        assert await ingest.index_transaction(INDEXER, **tx_fields(77)) == 1

    async def test_unregistered_caller(self, ingest, indexer):
        await index_block(ingest, 1)
        with pytest.raises(IndexerNotRegistered):
            await ingest.index_transaction("stranger", **tx_fields(1))

    async def test_inactive_indexer_may_index_transactions(self, ingest, registry, indexer):
        await index_block(ingest, 1)
        await registry.toggle_active(OWNER, INDEXER)
        assert await ingest.index_transaction(INDEXER, **tx_fields(1)) == 1

    async def test_activity_for_sender_and_recipient(self, ingest, storage, indexer):
        await index_block(ingest, 5)
        await index_block(ingest, 9)
        await ingest.index_transaction(INDEXER, **tx_fields(5, n=1, amount=100))
        await ingest.index_transaction(INDEXER, **tx_fields(9, n=2, amount=40))

        alice = await storage.activity.get("alice")
        assert alice["first_seen_height"] == 5
        assert alice["last_seen_height"] == 9
        assert alice["tx_count"] == 2
        assert alice["sent_amount"] == 140
        assert alice["received_amount"] == 0

        bob = await storage.activity.get("bob")
        assert bob["tx_count"] == 2
        assert bob["received_amount"] == 140
        assert bob["sent_amount"] == 0

    async def test_no_recipient_no_amount(self, ingest, storage, indexer):
        await index_block(ingest, 3)
        await ingest.index_transaction(
            INDEXER, **tx_fields(3, recipient=None, amount=None, tx_type="deploy"),
        )
        alice = await storage.activity.get("alice")
        assert alice["tx_count"] == 1
        assert alice["sent_amount"] == 0
        assert await storage.activity.get("bob") is None

    async def test_failed_reference_leaves_no_activity(self, ingest, storage, indexer):
        with pytest.raises(InvalidBlock):
            await ingest.index_transaction(INDEXER, **tx_fields(3))
        assert await storage.activity.get("alice") is None
        assert await storage.state.get("next_transaction_id") == 1

    async def test_contract_call_counters(self, ingest, storage, indexer):
        await index_block(ingest, 10)
        await ingest.index_contract(
            INDEXER, contract_address="SP1.pool", deployer="carol", name="pool",
            deployed_at_height=10, source_hash=h32(1), contract_type="defi",
        )
        call = dict(contract_address="SP1.pool", function_name="swap", recipient=None)
        await ingest.index_transaction(INDEXER, **tx_fields(10, n=1, **call))
        await ingest.index_transaction(INDEXER, **tx_fields(10, n=2, **call))
        await ingest.index_transaction(INDEXER, **tx_fields(10, n=3, sender="dave", **call))

        contract = await storage.contracts.get("SP1.pool")
        assert contract["total_calls"] == 3
        assert contract["unique_callers"] == 2
        assert contract["last_call_height"] == 10
        assert (await storage.activity.get("alice"))["contract_calls"] == 2

    async def test_call_to_unknown_contract_only_records_tx(self, ingest, storage, indexer):
        await index_block(ingest, 10)
        await ingest.index_transaction(
            INDEXER, **tx_fields(10, contract_address="SP1.unknown", function_name="f"),
        )
        assert await storage.contracts.get("SP1.unknown") is None
        assert (await storage.activity.get("alice"))["contract_calls"] == 0

    async def test_amount_totals_bounded(self, ingest, storage, indexer):
        await index_block(ingest, 1)
        await ingest.index_transaction(INDEXER, **tx_fields(1, n=1, amount=MAX_STORED_INT))
        with pytest.raises(ValueError):
            await ingest.index_transaction(INDEXER, **tx_fields(1, n=2, amount=1))

        alice = await storage.activity.get("alice")
        assert alice["sent_amount"] == MAX_STORED_INT
        assert alice["tx_count"] == 1
        assert await storage.state.get("next_transaction_id") == 2


class TestBatchIndexTransactions:

    async def test_persists_every_item(self, ingest, storage, indexer):
        await index_block(ingest, 1)
        items = [tx_fields(1, n=i) for i in range(1, 6)]
        assert await ingest.batch_index_transactions(INDEXER, items) == 5
        assert await storage.transactions.count() == 5
        assert (await storage.activity.get("alice"))["tx_count"] == 5

    async def test_all_or_nothing(self, ingest, storage, indexer):
        await index_block(ingest, 1)
        items = [tx_fields(1, n=1), tx_fields(2, n=2)]
        with pytest.raises(InvalidBlock):
            await ingest.batch_index_transactions(INDEXER, items)
        assert await storage.transactions.count() == 0
        assert await storage.activity.get("alice") is None
        assert await storage.state.get("next_transaction_id") == 1

    async def test_concurrent_reader_sees_no_partial_batch(self, ingest, indexer):
        await index_block(ingest, 5)
        items = [tx_fields(5, n=1), tx_fields(5, n=2), tx_fields(999, n=3)]
        seen = []

        async def poll():
            for _ in range(50):
                if await ingest.get_transaction(1) is not None:
                    seen.append(1)
                await asyncio.sleep(0)

        results = await asyncio.gather(
            ingest.batch_index_transactions(INDEXER, items), poll(),
            return_exceptions=True,
        )
        assert isinstance(results[0], InvalidBlock)
        assert seen == []
        assert await ingest.get_transaction(1) is None

    async def test_limit(self, ingest, indexer):
        await index_block(ingest, 1)
        items = [tx_fields(1, n=i) for i in range(MAX_BATCH_SIZE + 1)]
        with pytest.raises(TooManyResults):
            await ingest.batch_index_transactions(INDEXER, items)

    async def test_full_batch_accepted(self, ingest, indexer):
        await index_block(ingest, 1)
        items = [tx_fields(1, n=i) for i in range(MAX_BATCH_SIZE)]
        assert await ingest.batch_index_transactions(INDEXER, items) == MAX_BATCH_SIZE

    async def test_empty_batch(self, ingest, indexer):
        assert await ingest.batch_index_transactions(INDEXER, []) == 0

    async def test_unknown_field(self, ingest, indexer):
        await index_block(ingest, 1)
        with pytest.raises(ValueError):
            await ingest.batch_index_transactions(INDEXER, [dict(tx_fields(1), gas=5)])

    async def test_unregistered_caller(self, ingest):
        with pytest.raises(IndexerNotRegistered):
            await ingest.batch_index_transactions("stranger", [])


# ── Events, token transfers, contracts ─────────────────────────────────────

class TestIndexEvent:

    async def test_topics_round_trip(self, ingest, indexer):
        topics = [h32(1), h32(2), h32(3)]
        event_id = await ingest.index_event(
            INDEXER, tx_hash=h32(5), tx_index=0, height=12, contract_address="SP1.token",
            event_type="print", event_data=b"\x01\x02", topics=topics,
        )
        assert event_id == 1
        event = await ingest.get_event(event_id)
        assert event["topics"] == topics
        assert event["event_data"] == b"\x01\x02"

    async def test_no_block_required(self, ingest, indexer):
        assert await ingest.index_event(
            INDEXER, tx_hash=h32(5), tx_index=0, height=99_999, contract_address="c",
            event_type="print", event_data=b"", topics=[],
        ) == 1

    async def test_too_many_topics(self, ingest, indexer):
        with pytest.raises(ValueError):
            await ingest.index_event(
                INDEXER, tx_hash=h32(5), tx_index=0, height=1, contract_address="c",
                event_type="print", event_data=b"", topics=[h32(i) for i in range(5)],
            )

    async def test_event_data_limit(self, ingest, indexer):
        with pytest.raises(ValueError):
            await ingest.index_event(
                INDEXER, tx_hash=h32(5), tx_index=0, height=1, contract_address="c",
                event_type="print", event_data=b"\x00" * 257, topics=[],
            )

    async def test_unregistered_caller(self, ingest):
        with pytest.raises(IndexerNotRegistered):
            await ingest.index_event(
                "stranger", tx_hash=h32(5), tx_index=0, height=1, contract_address="c",
                event_type="print", event_data=b"", topics=[],
            )


class TestIndexTokenTransfer:

    def _transfer(self, **overrides):
        fields = dict(
            tx_hash=h32(8), height=4, token_contract="SP1.usda", from_address="alice",
            to_address="bob", amount=500, transfer_type="ft", memo=b"hi",
        )
        fields.update(overrides)
        return fields

    async def test_ids_independent_of_transactions(self, ingest, indexer):
        await index_block(ingest, 4)
        assert await ingest.index_transaction(INDEXER, **tx_fields(4)) == 1
        assert await ingest.index_transaction(INDEXER, **tx_fields(4, n=2)) == 2
        transfer_id = await ingest.index_token_transfer(INDEXER, **self._transfer())
        assert transfer_id == 1
        assert (await ingest.get_transaction(1))["tx_hash"] == h32(10_001)
        assert (await ingest.get_token_transfer(1))["memo"] == b"hi"

    async def test_memo_limit(self, ingest, indexer):
        with pytest.raises(ValueError):
            await ingest.index_token_transfer(INDEXER, **self._transfer(memo=b"x" * 65))

    async def test_memo_optional(self, ingest, indexer):
        transfer_id = await ingest.index_token_transfer(INDEXER, **self._transfer(memo=None))
        assert (await ingest.get_token_transfer(transfer_id))["memo"] is None

    async def test_recipient_tokens_held(self, ingest, storage, indexer):
        await index_block(ingest, 4)
        await ingest.index_transaction(INDEXER, **tx_fields(4))
        await ingest.index_token_transfer(INDEXER, **self._transfer())
        await ingest.index_token_transfer(INDEXER, **self._transfer())
        await ingest.index_token_transfer(INDEXER, **self._transfer(token_contract="SP1.xbtc"))
        assert (await storage.activity.get("bob"))["tokens_held"] == ["SP1.usda", "SP1.xbtc"]

    async def test_unknown_recipient_gets_no_record(self, ingest, storage, indexer):
        await ingest.index_token_transfer(INDEXER, **self._transfer(to_address="erin"))
        assert await storage.activity.get("erin") is None


class TestIndexContract:

    def _contract(self, **overrides):
        fields = dict(
            contract_address="SP1.pool", deployer="carol", name="pool",
            deployed_at_height=10, source_hash=h32(1), contract_type="defi",
        )
        fields.update(overrides)
        return fields

    async def test_insert(self, ingest, storage, clock, indexer):
        clock.set(30)
        record = await ingest.index_contract(INDEXER, **self._contract())
        assert record["total_calls"] == 0
        assert record["unique_callers"] == 0
        assert record["deployed_at_time"] == 30
        stored = await storage.contracts.get("SP1.pool")
        assert stored["source_hash"] == h32(1)
        assert stored["active"] is True

    async def test_upsert_keeps_counters(self, ingest, storage, indexer):
        await index_block(ingest, 10)
        await ingest.index_contract(INDEXER, **self._contract())
        await ingest.index_transaction(
            INDEXER, **tx_fields(10, contract_address="SP1.pool", function_name="swap"),
        )
        await ingest.index_contract(INDEXER, **self._contract(name="pool-v2"))
        stored = await storage.contracts.get("SP1.pool")
        assert stored["name"] == "pool-v2"
        assert stored["total_calls"] == 1

    async def test_deployer_counter_on_first_insert(self, ingest, storage, indexer):
        await index_block(ingest, 10)
        await ingest.index_transaction(INDEXER, **tx_fields(10, sender="carol"))
        await ingest.index_contract(INDEXER, **self._contract())
        await ingest.index_contract(INDEXER, **self._contract())
        assert (await storage.activity.get("carol"))["contracts_deployed"] == 1

    async def test_name_limit(self, ingest, indexer):
        with pytest.raises(ValueError):
            await ingest.index_contract(INDEXER, **self._contract(name="n" * 65))

    async def test_unregistered_caller(self, ingest):
        with pytest.raises(IndexerNotRegistered):
            await ingest.index_contract("stranger", **self._contract())


class TestStatus:

    async def test_counts(self, ingest, indexer, clock):
        clock.set(12)
        await index_block(ingest, 1)
        await ingest.index_transaction(INDEXER, **tx_fields(1))
        status = await ingest.get_status()
        assert status == {
            "current_indexed_height": 1,
            "total_blocks_indexed": 1,
            "total_transactions_indexed": 1,
            "total_events_indexed": 0,
            "total_token_transfers_indexed": 0,
            "total_queries_processed": 0,
            "current_slot": 12,
            "paused": False,
        }

    async def test_missing_lookups(self, ingest):
        assert await ingest.get_block(1) is None
        assert await ingest.get_block_by_height(1) is None
        assert await ingest.get_transaction(1) is None
        assert await ingest.get_event(1) is None
        assert await ingest.get_token_transfer(1) is None
