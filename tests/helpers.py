"""Record builders and constants shared by the unit and integration tests."""

from indexhub.registry import REGISTRATION_BOND

OWNER = "owner"
INDEXER = "indexer-a"
READER = "reader-1"

# Enough for the bond plus change
INDEXER_FUNDS = REGISTRATION_BOND + 1_000_000
READER_FUNDS = 10_000_000


def h32(n: int) -> bytes:
    """A distinct 32-byte hash for test records."""
    return n.to_bytes(32, "big")


def hex32(n: int) -> str:
    return "0x" + h32(n).hex()


def block_fields(height: int, **overrides) -> dict:
    fields = dict(
        height=height,
        block_hash=h32(height),
        parent_hash=h32(height - 1 if height else 0),
        timestamp=1_700_000_000 + height,
        miner="miner-1",
        tx_count=1,
        total_fees=10,
        size=1024,
        difficulty=7,
    )
    fields.update(overrides)
    return fields


def tx_fields(height: int, n: int = 1, **overrides) -> dict:
    fields = dict(
        tx_hash=h32(10_000 + n),
        height=height,
        tx_type="transfer",
        sender="alice",
        recipient="bob",
        amount=250,
        fee=3,
        nonce=n,
    )
    fields.update(overrides)
    return fields


async def register_indexer(accounts, registry, identity=INDEXER, funds=INDEXER_FUNDS,
                           name="Indexer", indexer_type="full"):
    await accounts.create_account(identity, balance=funds)
    return await registry.register(identity, name, indexer_type)


async def index_block(ingest, height, indexer=INDEXER, **overrides):
    return await ingest.index_block(indexer, **block_fields(height, **overrides))
