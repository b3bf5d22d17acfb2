"""TTL-bounded distributed lock on top of a KeyValueStore."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import uuid4

import structlog

from cacheaside_core.constants import LOCK_KEY_PREFIX, PROCESS_TOKEN_PREFIX
from cacheaside_core.exceptions import LockAcquisitionError
from cacheaside_core.interfaces.store import KeyValueStore

logger = structlog.get_logger()


def current_owner_id() -> str:
    """Identify the calling thread and asyncio task, for readable tokens.

    Not unique on its own: one task may hold several locks over time and
    callers may reuse task names.
    """
    try:
        task = asyncio.current_task()
    except RuntimeError:
        task = None
    task_name = task.get_name() if task is not None else "main"
    return f"{threading.get_ident()}-{task_name}"


class DistributedLock:
    """Mutual exclusion on ``"lock:" + name`` shared by every store client.

    The record holds the owner's token and a physical TTL, so a crashed
    holder blocks others for at most ``ttl_seconds``. Every acquire mints
    a fresh token, so a holder whose record expired can never delete a
    later holder's record, even one from the same task. The token is kept
    on the instance: a lock acquired in one task may be released from
    another, e.g. a background rebuild job.
    """

    def __init__(
        self,
        store: KeyValueStore,
        name: str,
        *,
        token_prefix: str = PROCESS_TOKEN_PREFIX,
    ) -> None:
        """Initialize with the backing store and the lock name."""
        self._store = store
        self.name = name
        self.key = f"{LOCK_KEY_PREFIX}{name}"
        self._token_prefix = token_prefix
        self._token: str | None = None

    @property
    def token(self) -> str | None:
        """Ownership token written by the last successful acquire."""
        return self._token

    @property
    def held(self) -> bool:
        """True between a successful acquire and the matching release."""
        return self._token is not None

    async def acquire(self, ttl_seconds: int) -> bool:
        """Try once to take the lock; True iff this call created the record."""
        token = f"{self._token_prefix}-{current_owner_id()}-{uuid4().hex}"
        acquired = await self._store.set_if_absent(self.key, token, ttl_seconds)
        if acquired:
            self._token = token
            logger.debug("lock_acquired", lock=self.key, ttl_seconds=ttl_seconds)
        else:
            logger.debug("lock_busy", lock=self.key)
        return acquired

    async def release(self) -> bool:
        """Delete the record if it still carries our token.

        Returns False when we never held the lock or it expired and was
        taken over; the other holder's record is left untouched.
        """
        token = self._token
        if token is None:
            return False
        self._token = None
        released = await self._store.compare_and_delete(self.key, token)
        if released:
            logger.debug("lock_released", lock=self.key)
        else:
            logger.warning("lock_lost_before_release", lock=self.key)
        return released

    @asynccontextmanager
    async def hold(self, ttl_seconds: int) -> AsyncIterator[DistributedLock]:
        """Acquire or raise LockAcquisitionError; always release on exit."""
        if not await self.acquire(ttl_seconds):
            msg = f"Lock {self.key} is held by another owner"
            raise LockAcquisitionError(msg)
        try:
            yield self
        finally:
            await self.release()
