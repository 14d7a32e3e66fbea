from typing import Optional

import aiosqlite

_COLUMNS = (
    "reader_id, total_queries, successful_queries, failed_queries, premium_queries, "
    "last_query_slot, queries_this_slot, total_fees_paid"
)


def empty_stats(reader_id: str) -> dict:
    return {
        "reader_id": reader_id,
        "total_queries": 0,
        "successful_queries": 0,
        "failed_queries": 0,
        "premium_queries": 0,
        "last_query_slot": 0,
        "queries_this_slot": 0,
        "total_fees_paid": 0,
    }


class QueryStatsRepo:
    """Per-reader query counters and rate-limit window."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def get(self, reader_id: str) -> Optional[dict]:
        async with self._db.execute(
            f"SELECT {_COLUMNS} FROM query_stats WHERE reader_id = ?", (reader_id,)
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return {
            "reader_id": row[0],
            "total_queries": row[1],
            "successful_queries": row[2],
            "failed_queries": row[3],
            "premium_queries": row[4],
            "last_query_slot": row[5],
            "queries_this_slot": row[6],
            "total_fees_paid": row[7],
        }

    async def put(self, record: dict):
        await self._db.execute(
            f"INSERT INTO query_stats ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(reader_id) DO UPDATE SET total_queries=excluded.total_queries, "
            "successful_queries=excluded.successful_queries, "
            "failed_queries=excluded.failed_queries, premium_queries=excluded.premium_queries, "
            "last_query_slot=excluded.last_query_slot, "
            "queries_this_slot=excluded.queries_this_slot, "
            "total_fees_paid=excluded.total_fees_paid",
            (
                record["reader_id"],
                record["total_queries"],
                record["successful_queries"],
                record["failed_queries"],
                record["premium_queries"],
                record["last_query_slot"],
                record["queries_this_slot"],
                record["total_fees_paid"],
            ),
        )
