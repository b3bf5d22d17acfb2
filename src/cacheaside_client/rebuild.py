"""Bounded background executor for cache rebuild jobs."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

import structlog

from cacheaside_core.constants import REBUILD_MAX_PENDING, REBUILD_MAX_WORKERS
from cacheaside_core.exceptions import RebuildRejectedError

logger = structlog.get_logger()

RebuildJob = Callable[[], Awaitable[None]]


class RebuildExecutor:
    """Run rebuild jobs off the caller's path with bounded capacity.

    At most ``max_workers`` jobs run at once and at most ``max_pending``
    more wait for a slot; beyond that ``submit`` raises
    RebuildRejectedError instead of growing an unbounded backlog.
    A failing job is logged and never reaches the submitter.
    """

    def __init__(
        self,
        max_workers: int = REBUILD_MAX_WORKERS,
        max_pending: int = REBUILD_MAX_PENDING,
    ) -> None:
        """Initialize with worker and backlog limits."""
        if max_workers < 1:
            msg = "max_workers must be at least 1"
            raise ValueError(msg)
        self.max_workers = max_workers
        self.max_pending = max_pending
        self._semaphore = asyncio.Semaphore(max_workers)
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def active_count(self) -> int:
        """Jobs submitted and not yet finished (running or waiting)."""
        return len(self._tasks)

    @property
    def closed(self) -> bool:
        """True once shutdown has been requested."""
        return self._closed

    def submit(self, name: str, job: RebuildJob) -> asyncio.Task[None]:
        """Schedule ``job`` and return without waiting for it."""
        if self._closed:
            msg = f"Rebuild executor is shut down, rejected {name}"
            raise RebuildRejectedError(msg)
        if len(self._tasks) >= self.max_workers + self.max_pending:
            msg = f"Rebuild executor at capacity ({len(self._tasks)} jobs), rejected {name}"
            raise RebuildRejectedError(msg)

        task = asyncio.create_task(self._run(name, job), name=f"rebuild:{name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug("rebuild_submitted", job=name, active=len(self._tasks))
        return task

    async def _run(self, name: str, job: RebuildJob) -> None:
        """Execute one job under the worker semaphore, logging failures."""
        async with self._semaphore:
            start = time.monotonic()
            try:
                await job()
            except Exception:
                logger.exception("rebuild_failed", job=name)
                return
            logger.debug(
                "rebuild_complete",
                job=name,
                duration_seconds=round(time.monotonic() - start, 3),
            )

    async def join(self) -> None:
        """Wait until every job submitted so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Reject new jobs and drain the ones already submitted."""
        self._closed = True
        await self.join()
        logger.debug("rebuild_executor_shutdown")
