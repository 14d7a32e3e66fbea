"""
test_admin_api.py - API tests for the owner-only admin endpoints.
"""

import pytest

from indexhub.metering import QUERY_FEE

from tests.helpers import INDEXER, OWNER, hex32

pytestmark = pytest.mark.asyncio


class TestAdminApi:

    @pytest.mark.parametrize("method,path,body", [
        ("post", f"/api/admin/indexers/{INDEXER}/toggle", None),
        ("post", "/api/admin/fees", {"basic_fee": 1, "premium_fee": 2}),
        ("post", "/api/admin/withdraw", {"amount": 1}),
        ("post", "/api/admin/pause", {"paused": True}),
        ("post", "/api/admin/analytics", {"metric_type": "q", "time_period": 1}),
        ("get", "/api/admin/analytics", None),
        ("get", "/api/accounts", None),
    ])
    async def test_non_owner_forbidden(self, client, indexer_headers, method, path, body):
        kwargs = {"headers": indexer_headers}
        if body is not None:
            kwargs["json"] = body
        r = await getattr(client, method)(path, **kwargs)
        assert r.status_code == 403
        assert r.json()["error"] == "NotAuthorized"
        assert r.json()["code"] == 100

    async def test_fees_and_withdraw(self, client, owner_headers, reader_headers):
        r = await client.post(
            "/api/admin/fees", json={"basic_fee": 2_000, "premium_fee": 9_000},
            headers=owner_headers,
        )
        assert r.json() == {"basic_query_fee": 2_000, "premium_query_fee": 9_000}
        await client.post(
            "/api/query/blocks", json={"start_height": 1, "end_height": 2},
            headers=reader_headers,
        )
        r = await client.post("/api/admin/withdraw", json={"amount": 2_000}, headers=owner_headers)
        assert r.json() == {"withdrawn": 2_000, "owner_balance": 2_000}

    async def test_withdraw_beyond_treasury(self, client, owner_headers):
        r = await client.post(
            "/api/admin/withdraw", json={"amount": QUERY_FEE}, headers=owner_headers,
        )
        assert r.status_code == 402

    async def test_pause(self, client, owner_headers, indexer_headers, reader_headers):
        r = await client.post("/api/admin/pause", json={"paused": True}, headers=owner_headers)
        assert r.json() == {"paused": True}
        block = {
            "height": 1, "block_hash": hex32(1), "parent_hash": hex32(0), "timestamp": 1,
        }
        r = await client.post("/api/ingest/blocks", json=block, headers=indexer_headers)
        assert r.status_code == 403
        r = await client.post(
            "/api/query/blocks", json={"start_height": 1, "end_height": 2},
            headers=reader_headers,
        )
        assert r.status_code == 403
        assert (await client.get("/api/status")).json()["paused"] is True

    async def test_analytics(self, client, owner_headers):
        r = await client.post(
            "/api/admin/analytics", json={"metric_type": "queries", "time_period": 144},
            headers=owner_headers,
        )
        assert r.json()["status"] == "pending"
        assert r.json()["requested_by"] == OWNER
        r = await client.get("/api/admin/analytics?metric_type=queries", headers=owner_headers)
        assert r.json()["report"]["time_period"] == 144

    async def test_list_accounts_hides_keys(self, client, owner_headers):
        r = await client.get("/api/accounts", headers=owner_headers)
        assert OWNER in r.json()
        assert all("api_key" not in a for a in r.json().values())
