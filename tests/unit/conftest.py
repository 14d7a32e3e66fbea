"""Shared fixtures for the IndexHub unit tests.

Every fixture runs against a fresh in-memory SQLite database and a manual
clock starting at slot 1.
"""

import pytest
import pytest_asyncio

from indexhub.account import AccountService
from indexhub.admin import AdminController
from indexhub.clock import ManualClock
from indexhub.ingest import IngestionPipeline
from indexhub.metering import QueryMeteringEngine
from indexhub.registry import IndexerRegistry
from indexhub.storage import StorageManager

from tests.helpers import OWNER, READER, READER_FUNDS, register_indexer


@pytest_asyncio.fixture
async def storage():
    sm = StorageManager(":memory:")
    await sm.initialize()
    yield sm
    await sm.close()


@pytest.fixture
def clock():
    return ManualClock(start=1)


@pytest_asyncio.fixture
async def accounts(storage):
    svc = AccountService(storage)
    await svc.setup_defaults(OWNER)
    return svc


@pytest.fixture
def registry(storage, accounts, clock):
    return IndexerRegistry(storage, accounts, clock, OWNER)


@pytest.fixture
def ingest(storage, registry, clock):
    return IngestionPipeline(storage, registry, clock)


@pytest.fixture
def metering(storage, accounts, clock, registry):
    return QueryMeteringEngine(storage, accounts, clock, registry=registry)


@pytest.fixture
def admin(storage, accounts, registry, clock):
    return AdminController(storage, accounts, registry, clock, OWNER)


@pytest_asyncio.fixture
async def indexer(accounts, registry):
    """A registered, active indexer."""
    return await register_indexer(accounts, registry)


@pytest_asyncio.fixture
async def reader(accounts):
    """A funded reader account."""
    return await accounts.create_account(READER, balance=READER_FUNDS)
