"""
clock.py - Ledger height / time-slot oracle.

Every service operation reads the clock exactly once and uses that value for
registered_at, indexed_at, rate-limit slots and cache expiry.
"""

import time


class Clock:
    """Source of the current slot (a monotonically non-decreasing integer)."""

    def now(self) -> int:
        raise NotImplementedError


class LedgerClock(Clock):
    """Derives the slot from wall time: one slot per `slot_seconds`."""

    def __init__(self, slot_seconds: float = 600.0, genesis: float = 0.0):
        if slot_seconds <= 0:
            raise ValueError("slot_seconds must be positive")
        self.slot_seconds = slot_seconds
        self.genesis = genesis
        self._last = 0

    def now(self) -> int:
        slot = int((time.time() - self.genesis) // self.slot_seconds)
        # Never step backwards if the wall clock does.
        if slot < self._last:
            return self._last
        self._last = slot
        return slot


class ManualClock(Clock):
    """Clock driven explicitly by the host (tests, replays)."""

    def __init__(self, start: int = 1):
        self._slot = start

    def now(self) -> int:
        return self._slot

    def advance(self, slots: int = 1) -> int:
        if slots < 0:
            raise ValueError("Clock cannot move backwards")
        self._slot += slots
        return self._slot

    def set(self, slot: int):
        if slot < self._slot:
            raise ValueError("Clock cannot move backwards")
        self._slot = slot
