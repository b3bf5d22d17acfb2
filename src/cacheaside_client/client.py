"""Cache-aside client with pass-through, logical-expiry and mutex reads."""

from __future__ import annotations

import math
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from functools import partial
from types import TracebackType
from typing import TYPE_CHECKING, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from cacheaside_client.lock import DistributedLock
from cacheaside_client.rebuild import RebuildExecutor
from cacheaside_core.codec import decode_envelope, decode_value, encode_envelope, encode_value
from cacheaside_core.constants import NULL_MARKER
from cacheaside_core.exceptions import (
    LoaderError,
    LockAcquisitionError,
    LockRetriesExhaustedError,
    RebuildRejectedError,
)
from cacheaside_core.interfaces.loader import Loader
from cacheaside_core.interfaces.store import KeyValueStore
from cacheaside_core.models.envelope import CacheEnvelope

if TYPE_CHECKING:
    from cacheaside_core.config.settings import Settings

T = TypeVar("T")
ID = TypeVar("ID")

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _ttl_seconds(ttl: timedelta) -> int:
    """Whole seconds for the store, never below one."""
    return max(1, math.ceil(ttl.total_seconds()))


class CacheClient:
    """Cache-aside reads and writes over a shared KeyValueStore.

    Three read strategies trade freshness against latency:

    - ``read_pass_through`` loads inline on a miss and negative-caches
      absent ids.
    - ``read_with_logical_expiry`` never loads inline; expired entries
      are served stale while one background job rebuilds them.
    - ``read_with_mutex`` blocks on a miss until exactly one caller has
      loaded the value.

    The client owns its RebuildExecutor unless one is injected.
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: Settings,
        *,
        executor: RebuildExecutor | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize with a store, settings and optional collaborators."""
        self._store = store
        self.settings = settings
        self._owns_store = False
        self._owns_executor = executor is None
        self._executor = executor or RebuildExecutor(
            max_workers=settings.rebuild_max_workers,
            max_pending=settings.rebuild_max_pending,
        )
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> CacheClient:
        """Build a client on the store selected by settings."""
        from cacheaside_infra.store.factory import create_store

        client = cls(create_store(settings), settings)
        client._owns_store = True
        return client

    @property
    def store(self) -> KeyValueStore:
        """The backing key-value store."""
        return self._store

    @property
    def executor(self) -> RebuildExecutor:
        """Executor running logical-expiry rebuilds."""
        return self._executor

    async def aclose(self) -> None:
        """Drain the executor and close the store, if this client created them."""
        if self._owns_executor:
            await self._executor.shutdown()
        if self._owns_store:
            await self._store.aclose()

    async def __aenter__(self) -> CacheClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def write(self, key: str, value: object, ttl: timedelta) -> None:
        """Store ``value`` under ``key`` with a physical TTL."""
        await self._store.set(key, encode_value(value), _ttl_seconds(ttl))

    async def write_with_logical_expiry(self, key: str, value: object, ttl: timedelta) -> None:
        """Store ``value`` in an envelope that goes stale after ``ttl``.

        The entry itself has no physical TTL unless
        ``logical_expiry_safety_ttl_seconds`` is configured.
        """
        raw = encode_envelope(value, self._clock() + ttl)
        await self._store.set(key, raw, self.settings.logical_expiry_safety_ttl_seconds)

    async def delete(self, key: str) -> None:
        """Invalidate a cached entry after the source changed."""
        await self._store.delete(key)
        logger.debug("cache_invalidated", key=key)

    async def refresh_ttl(self, key: str, ttl: timedelta) -> bool:
        """Extend the physical TTL of an existing entry."""
        return await self._store.expire(key, _ttl_seconds(ttl))

    # ------------------------------------------------------------------
    # Read strategies
    # ------------------------------------------------------------------

    async def read_pass_through(
        self,
        key_prefix: str,
        id_: ID,
        type_: type[T],
        loader: Loader[ID, T],
        ttl: timedelta,
    ) -> T | None:
        """Read through the cache, loading and negative-caching on a miss."""
        key = f"{key_prefix}{id_}"
        hit, value = await self._lookup(key, type_)
        if hit:
            return value
        logger.debug("cache_miss", key=key, strategy="pass_through")
        return await self._populate(key, id_, loader, ttl)

    async def read_with_logical_expiry(
        self,
        key_prefix: str,
        id_: ID,
        type_: type[T],
        loader: Loader[ID, T],
        ttl: timedelta,
    ) -> T | None:
        """Serve the cached envelope, rebuilding it in the background once stale.

        Expects a pre-warmed cache: a miss returns None without loading.
        Never waits on the rebuild lock.
        """
        key = f"{key_prefix}{id_}"
        raw = await self._store.get(key)
        if not raw:
            logger.debug("cache_miss", key=key, strategy="logical_expiry")
            return None

        envelope = decode_envelope(raw, type_)
        if not envelope.is_expired(self._clock()):
            return envelope.data

        lock = self._lock_for(id_)
        if not await lock.acquire(self.settings.lock_ttl_seconds):
            logger.debug("stale_served", key=key, reason="rebuild_in_flight")
            return envelope.data

        try:
            current = await self._fresh_envelope(key, type_)
            if current is not None:
                await lock.release()
                return current.data
            self._executor.submit(
                key, partial(self._rebuild_logical, lock, key, id_, loader, ttl)
            )
        except RebuildRejectedError:
            logger.warning("rebuild_rejected", key=key)
            await lock.release()
            return envelope.data
        except BaseException:
            await lock.release()
            raise

        logger.debug("stale_served", key=key, reason="rebuild_submitted")
        return envelope.data

    async def read_with_mutex(
        self,
        key_prefix: str,
        id_: ID,
        type_: type[T],
        loader: Loader[ID, T],
        ttl: timedelta,
    ) -> T | None:
        """Read through the cache; on a miss only the lock holder loads.

        Other callers sleep and retry the whole read, up to
        ``mutex_max_attempts`` times, then LockRetriesExhaustedError.
        """
        key = f"{key_prefix}{id_}"
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.mutex_max_attempts),
            wait=wait_fixed(self.settings.mutex_retry_interval_seconds),
            retry=retry_if_exception_type(LockAcquisitionError),
        )
        try:
            return await retrying(self._mutex_attempt, key, id_, type_, loader, ttl)
        except RetryError as e:
            msg = (
                f"Gave up on {key} after {self.settings.mutex_max_attempts} "
                "attempts waiting for the rebuild lock"
            )
            raise LockRetriesExhaustedError(msg) from e

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock_for(self, id_: object) -> DistributedLock:
        return DistributedLock(self._store, f"{self.settings.lock_name_prefix}{id_}")

    async def _lookup(self, key: str, type_: type[T]) -> tuple[bool, T | None]:
        """Return (hit, value); a null marker is a hit with value None."""
        raw = await self._store.get(key)
        if raw is None:
            return False, None
        if raw == NULL_MARKER:
            logger.debug("null_marker_hit", key=key)
            return True, None
        return True, decode_value(raw, type_)

    async def _fresh_envelope(self, key: str, type_: type[T]) -> CacheEnvelope[T] | None:
        """Envelope at key if it is present and not yet expired."""
        raw = await self._store.get(key)
        if not raw:
            return None
        envelope = decode_envelope(raw, type_)
        if envelope.is_expired(self._clock()):
            return None
        return envelope

    async def _load(self, loader: Loader[ID, T], id_: ID, key: str) -> T | None:
        """Call the loader, wrapping failures so they are never negative-cached."""
        try:
            return await loader(id_)
        except Exception as e:
            logger.warning("loader_failed", key=key, error=str(e))
            msg = f"Loader failed for {key}: {e}"
            raise LoaderError(msg) from e

    async def _populate(
        self, key: str, id_: ID, loader: Loader[ID, T], ttl: timedelta
    ) -> T | None:
        """Load from the source and cache the value or a null marker."""
        value = await self._load(loader, id_, key)
        if value is None:
            await self._store.set(key, NULL_MARKER, self.settings.null_ttl_seconds)
            logger.debug("null_marker_written", key=key, ttl_seconds=self.settings.null_ttl_seconds)
            return None
        await self.write(key, value, ttl)
        return value

    async def _mutex_attempt(
        self,
        key: str,
        id_: ID,
        type_: type[T],
        loader: Loader[ID, T],
        ttl: timedelta,
    ) -> T | None:
        """One pass of the mutex read; raises LockAcquisitionError if busy."""
        hit, value = await self._lookup(key, type_)
        if hit:
            return value

        lock = self._lock_for(id_)
        if not await lock.acquire(self.settings.lock_ttl_seconds):
            msg = f"Lock {lock.key} is held by another owner"
            raise LockAcquisitionError(msg)
        try:
            # Another holder may have populated the key since our first look.
            hit, value = await self._lookup(key, type_)
            if hit:
                return value
            logger.debug("cache_miss", key=key, strategy="mutex")
            return await self._populate(key, id_, loader, ttl)
        finally:
            await lock.release()

    async def _rebuild_logical(
        self,
        lock: DistributedLock,
        key: str,
        id_: ID,
        loader: Loader[ID, T],
        ttl: timedelta,
    ) -> None:
        """Background job: reload, rewrite the envelope, always unlock."""
        try:
            value = await loader(id_)
            if value is None:
                logger.info("rebuild_source_empty", key=key)
            await self.write_with_logical_expiry(key, value, ttl)
        finally:
            await lock.release()
