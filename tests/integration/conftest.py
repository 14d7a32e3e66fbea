"""
Shared fixtures for the IndexHub API tests.

Provides a fully wired IndexerServer on in-memory SQLite with a manual
clock, and an httpx.AsyncClient talking to its app in-process.
"""

import httpx
import pytest_asyncio

from indexhub.clock import ManualClock
from indexhub.server import IndexerServer

from tests.helpers import INDEXER, INDEXER_FUNDS, OWNER, READER, READER_FUNDS


@pytest_asyncio.fixture
async def server():
    srv = IndexerServer(db_path=":memory:", owner_id=OWNER, clock=ManualClock(start=1))
    await srv._init_services()
    yield srv
    await srv.storage.close()


@pytest_asyncio.fixture
async def client(server):
    transport = httpx.ASGITransport(app=server.app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def auth(api_key: str) -> dict:
    return {"X-API-Key": api_key}


async def signup(client, account_id: str, balance: int = 0) -> str:
    r = await client.post("/api/auth/register", json={"account_id": account_id, "balance": balance})
    assert r.status_code == 200, r.text
    return r.json()["api_key"]


@pytest_asyncio.fixture
async def owner_headers(server):
    return auth(server.owner_api_key)


@pytest_asyncio.fixture
async def indexer_headers(client):
    """A registered, active indexer's headers."""
    headers = auth(await signup(client, INDEXER, INDEXER_FUNDS))
    r = await client.post(
        "/api/indexers/register", json={"name": "Indexer A", "indexer_type": "full"},
        headers=headers,
    )
    assert r.status_code == 200, r.text
    return headers


@pytest_asyncio.fixture
async def reader_headers(client):
    return auth(await signup(client, READER, READER_FUNDS))
