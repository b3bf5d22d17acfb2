"""diskcache-backed implementation of KeyValueStore."""

from __future__ import annotations

import asyncio
import sqlite3
from collections.abc import Callable
from pathlib import Path
from typing import Any

import diskcache

from cacheaside_core.exceptions import StoreError

# diskcache surfaces lock contention as Timeout and storage faults from SQLite or the filesystem
_BACKEND_ERRORS = (diskcache.Timeout, sqlite3.Error, OSError)


class DiskKeyValueStore:
    """Persistent store backed by diskcache (SQLite under the hood).

    Safe to share between processes on one host; ``add`` and
    ``transact`` give the atomicity the lock needs.
    """

    def __init__(self, cache_dir: Path) -> None:
        """Initialize with a cache directory."""
        cache_dir.mkdir(parents=True, exist_ok=True)
        self._cache = diskcache.Cache(str(cache_dir))

    async def get(self, key: str) -> str | None:
        """Retrieve a value by key."""
        result = await self._run("GET", key, self._cache.get, key)
        if result is None:
            return None
        return str(result)

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        """Store a value, with TTL when given."""
        await self._run("SET", key, self._cache.set, key, value, expire=ttl_seconds)

    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Store only if absent; diskcache's ``add`` is atomic."""
        result = await self._run("ADD", key, self._cache.add, key, value, expire=ttl_seconds)
        return bool(result)

    async def delete(self, key: str) -> None:
        """Delete a key from the store."""
        await self._run("DELETE", key, self._cache.delete, key)

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        """Refresh TTL on an existing key."""
        result = await self._run("TOUCH", key, self._cache.touch, key, expire=ttl_seconds)
        return bool(result)

    async def compare_and_delete(self, key: str, expected: str) -> bool:
        """Delete the key only if it holds ``expected``, inside a transaction."""
        result = await self._run(
            "compare-and-delete", key, self._compare_and_delete, key, expected
        )
        return bool(result)

    def _compare_and_delete(self, key: str, expected: str) -> bool:
        """Blocking body of compare_and_delete."""
        with self._cache.transact():
            if self._cache.get(key) != expected:
                return False
            return bool(self._cache.delete(key))

    async def aclose(self) -> None:
        """Close the cache."""
        await asyncio.to_thread(self._cache.close)

    async def _run(
        self, op: str, key: str, func: Callable[..., Any], *args: Any, **kwargs: Any
    ) -> Any:  # noqa: ANN401
        """Run a blocking diskcache call off the loop, wrapping backend failures."""
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except _BACKEND_ERRORS as e:
            msg = f"{op} {key} failed: {e}"
            raise StoreError(msg) from e
