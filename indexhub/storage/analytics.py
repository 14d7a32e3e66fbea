from typing import Optional

import aiosqlite


class AnalyticsRepo:
    """Analytics report requests, one row per metric type."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def request(self, metric_type: str, time_period: int, requested_by: str, requested_at: int):
        await self._db.execute(
            "INSERT INTO analytics_reports (metric_type, time_period, requested_by, requested_at, status) "
            "VALUES (?, ?, ?, ?, 'pending') "
            "ON CONFLICT(metric_type) DO UPDATE SET time_period=excluded.time_period, "
            "requested_by=excluded.requested_by, requested_at=excluded.requested_at, "
            "status='pending'",
            (metric_type, time_period, requested_by, requested_at),
        )

    async def get(self, metric_type: str) -> Optional[dict]:
        async with self._db.execute(
            "SELECT metric_type, time_period, requested_by, requested_at, status "
            "FROM analytics_reports WHERE metric_type = ?",
            (metric_type,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return {
            "metric_type": row[0],
            "time_period": row[1],
            "requested_by": row[2],
            "requested_at": row[3],
            "status": row[4],
        }
