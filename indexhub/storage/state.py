from typing import Dict

import aiosqlite


class StateRepo:
    """Global scalars: id sequences, current indexed height, admin parameters."""

    def __init__(self, db: aiosqlite.Connection):
        self._db = db

    async def get(self, key: str, default: int = 0) -> int:
        async with self._db.execute(
            "SELECT value FROM index_state WHERE key = ?", (key,)
        ) as cursor:
            row = await cursor.fetchone()
        return row[0] if row else default

    async def set(self, key: str, value: int):
        await self._db.execute(
            "INSERT INTO index_state (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
        )

    async def increment(self, key: str, by: int = 1) -> int:
        """Add `by` to the scalar and return the new value."""
        await self._db.execute(
            "INSERT INTO index_state (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = value + excluded.value",
            (key, by),
        )
        return await self.get(key)

    async def next_id(self, sequence: str) -> int:
        """Allocate the next id from a sequence; ids start at 1 and are never reused."""
        current = await self.get(sequence, default=1)
        await self.set(sequence, current + 1)
        return current

    async def raise_to(self, key: str, value: int) -> int:
        """Set the scalar to max(current, value) and return the result."""
        await self._db.execute(
            "UPDATE index_state SET value = MAX(value, ?) WHERE key = ?",
            (value, key),
        )
        return await self.get(key)

    async def snapshot(self) -> Dict[str, int]:
        result = {}
        async with self._db.execute("SELECT key, value FROM index_state") as cursor:
            async for row in cursor:
                result[row[0]] = row[1]
        return result
