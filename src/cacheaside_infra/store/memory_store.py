"""In-process implementation of KeyValueStore."""

from __future__ import annotations

import time
from collections.abc import Callable


class MemoryKeyValueStore:
    """Dict-backed store for a single event loop.

    Every method completes without yielding to the loop, so each
    operation is atomic with respect to other tasks. Not shared across
    processes; use it for local runs and tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize with a monotonic clock returning seconds."""
        self._clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}

    def _live(self, key: str) -> str | None:
        """Return the live value for key, evicting it if expired."""
        entry = self._data.get(key)
        if entry is None:
            return None
        value, deadline = entry
        if deadline is not None and deadline <= self._clock():
            del self._data[key]
            return None
        return value

    def _deadline(self, ttl_seconds: int | None) -> float | None:
        return None if ttl_seconds is None else self._clock() + ttl_seconds

    async def get(self, key: str) -> str | None:
        """Retrieve a value by key."""
        return self._live(key)

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        """Store a value, with TTL when given."""
        self._data[key] = (value, self._deadline(ttl_seconds))

    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Store only if absent."""
        if self._live(key) is not None:
            return False
        self._data[key] = (value, self._deadline(ttl_seconds))
        return True

    async def delete(self, key: str) -> None:
        """Delete a key from the store."""
        self._data.pop(key, None)

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        """Refresh TTL on an existing key."""
        value = self._live(key)
        if value is None:
            return False
        self._data[key] = (value, self._deadline(ttl_seconds))
        return True

    async def compare_and_delete(self, key: str, expected: str) -> bool:
        """Delete the key only if it holds ``expected``."""
        if self._live(key) != expected:
            return False
        del self._data[key]
        return True

    async def aclose(self) -> None:
        """Drop all entries."""
        self._data.clear()

    def ttl(self, key: str) -> float | None:
        """Seconds until key expires; None if absent or persistent."""
        if self._live(key) is None:
            return None
        deadline = self._data[key][1]
        return None if deadline is None else deadline - self._clock()
