"""Reclaim worker: the single consumer of the removal queue.

Expired storage paths are submitted by the retention scheduler and deleted
here one at a time. A failed delete is logged and the worker moves on; the
object simply stays on disk.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Union

from fastapi.concurrency import run_in_threadpool

from remcpy.store.errors import DeleteFailed
from remcpy.store.service import ContentStore

logger = logging.getLogger(__name__)

_CLOSE = object()   # queue sentinel


class ReclaimWorker:
    """Drains an unbounded removal queue into ``ContentStore.delete``."""

    def __init__(self, store: ContentStore) -> None:
        self._store = store
        self._queue: Optional[asyncio.Queue] = None  # type: ignore[type-arg]
        self._task: Optional[asyncio.Task] = None  # type: ignore[type-arg]
        self.deleted = 0
        self.failed = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Create the queue and start the consumer task."""
        if self._task is not None:
            return
        self._queue = asyncio.Queue()
        self._task = asyncio.create_task(self._run())
        logger.info("Reclaim worker started")

    async def close(self) -> None:
        """Close the queue and wait for the consumer to finish what is queued."""
        if self._task is None or self._queue is None:
            return
        await self._queue.put(_CLOSE)
        await self._task
        self._task = None
        logger.info(
            "Reclaim worker stopped (deleted=%d, failed=%d)", self.deleted, self.failed
        )

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    async def submit(self, path: Union[str, Path]) -> None:
        """Enqueue a removal task for *path*."""
        if self._queue is None:
            raise RuntimeError("ReclaimWorker.submit() called before start()")
        await self._queue.put(str(path))

    async def join(self) -> None:
        """Wait until every submitted path has been processed."""
        if self._queue is not None:
            await self._queue.join()

    # ------------------------------------------------------------------
    # Consumer loop
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        assert self._queue is not None
        while True:
            item = await self._queue.get()
            try:
                if item is _CLOSE:
                    return
                await self._reclaim(item)
            finally:
                self._queue.task_done()

    async def _reclaim(self, path: str) -> None:
        try:
            await run_in_threadpool(self._store.delete, path)
        except DeleteFailed as exc:
            self.failed += 1
            logger.error("Error removing file: %s (%s)", path, exc.__cause__ or exc)
            return
        self.deleted += 1
