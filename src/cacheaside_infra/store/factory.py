"""Factory functions for creating store instances from settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

from cacheaside_core.interfaces.store import KeyValueStore

if TYPE_CHECKING:
    from cacheaside_core.config.settings import Settings


def create_store(settings: Settings) -> KeyValueStore:
    """Create a key-value store based on settings.

    Returns ``RedisKeyValueStore`` for ``store_backend == "redis"``,
    ``DiskKeyValueStore`` for ``"disk"`` and ``MemoryKeyValueStore``
    otherwise.
    """
    if settings.store_backend == "redis":
        from cacheaside_infra.store.redis_store import RedisKeyValueStore

        return RedisKeyValueStore.from_url(settings.redis_url)

    if settings.store_backend == "disk":
        from cacheaside_infra.store.disk_store import DiskKeyValueStore

        return DiskKeyValueStore(settings.cache_dir)

    from cacheaside_infra.store.memory_store import MemoryKeyValueStore

    return MemoryKeyValueStore()
