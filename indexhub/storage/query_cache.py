from typing import Optional

import aiosqlite


class QueryCacheRepo:
    """Cached query result digests. Expiry is evaluated by the caller."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def put(self, query_hash: bytes, result_digest: bytes, result_count: int,
                  cached_at: int, expires_at: int):
        await self._db.execute(
            "INSERT INTO query_cache (query_hash, result_digest, result_count, cached_at, "
            "expires_at, hit_count) VALUES (?, ?, ?, ?, ?, 0) "
            "ON CONFLICT(query_hash) DO UPDATE SET result_digest=excluded.result_digest, "
            "result_count=excluded.result_count, cached_at=excluded.cached_at, "
            "expires_at=excluded.expires_at, hit_count=0",
            (query_hash, result_digest, result_count, cached_at, expires_at),
        )

    async def get(self, query_hash: bytes) -> Optional[dict]:
        async with self._db.execute(
            "SELECT query_hash, result_digest, result_count, cached_at, expires_at, hit_count "
            "FROM query_cache WHERE query_hash = ?",
            (query_hash,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return {
            "query_hash": bytes(row[0]),
            "result_digest": bytes(row[1]),
            "result_count": row[2],
            "cached_at": row[3],
            "expires_at": row[4],
            "hit_count": row[5],
        }

    async def record_hit(self, query_hash: bytes):
        await self._db.execute(
            "UPDATE query_cache SET hit_count = hit_count + 1 WHERE query_hash = ?",
            (query_hash,),
        )
