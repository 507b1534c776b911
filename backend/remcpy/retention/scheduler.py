"""Retention scheduler: one timer loop for every uploaded object.

Expiries live in a single min-heap keyed by deadline and a background task
sleeps until the earliest one is due. Arming the same path again supersedes
its previous expiry, so an overwritten object is kept for its own full TTL.
Superseded heap entries are skipped when they reach the top.

Nothing here is persisted: pending expiries are lost on restart.
"""
from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

RemovalSink = Callable[[str], Awaitable[None]]


@dataclass(order=True)
class _Expiry:
    deadline: float   # absolute monotonic deadline
    seq:      int
    path:     str = field(compare=False)


class RetentionScheduler:
    """Hands storage paths to a removal sink once their TTL has elapsed.

    Args:
        sink: Coroutine function receiving each expired path, normally
              ``ReclaimWorker.submit``.
        default_ttl_seconds: TTL used when ``arm`` is not given one.
    """

    def __init__(self, sink: RemovalSink, default_ttl_seconds: float = 3600) -> None:
        self._sink = sink
        self._default_ttl = default_ttl_seconds
        self._heap: List[_Expiry] = []
        self._latest: Dict[str, int] = {}   # path -> seq of its live expiry
        self._seq = itertools.count()
        self._wakeup: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None  # type: ignore[type-arg]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the timer loop."""
        if self._task is not None:
            return
        self._wakeup = asyncio.Event()
        self._task = asyncio.create_task(self._run())
        logger.info("Retention scheduler started (TTL=%ss)", self._default_ttl)

    async def stop(self) -> None:
        """Cancel the timer loop and forget every pending expiry."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        dropped = len(self._latest)
        self._heap.clear()
        self._latest.clear()
        logger.info("Retention scheduler stopped; %d pending expiries dropped", dropped)

    # ------------------------------------------------------------------
    # Arming
    # ------------------------------------------------------------------

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    @property
    def pending(self) -> int:
        """Number of live expiries (superseded ones excluded)."""
        return len(self._latest)

    def arm(self, path: Union[str, Path], ttl_seconds: Optional[float] = None) -> float:
        """Schedule *path* for removal after the TTL. Never blocks.

        Returns:
            The monotonic deadline of the new expiry.
        """
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl
        entry = _Expiry(deadline=time.monotonic() + ttl, seq=next(self._seq), path=str(path))
        if entry.path in self._latest:
            logger.debug("Re-armed %s; previous expiry superseded", entry.path)
        heapq.heappush(self._heap, entry)
        self._latest[entry.path] = entry.seq
        if self._wakeup is not None:
            self._wakeup.set()
        logger.debug("Armed %s (TTL=%ss)", entry.path, ttl)
        return entry.deadline

    def cancel(self, path: Union[str, Path]) -> bool:
        """Drop the pending expiry of *path*. Returns False if there was none."""
        return self._latest.pop(str(path), None) is not None

    # ------------------------------------------------------------------
    # Timer loop
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        assert self._wakeup is not None
        while True:
            self._wakeup.clear()
            await self._fire_due()
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self._next_delay())
            except asyncio.TimeoutError:
                pass

    def _next_delay(self) -> Optional[float]:
        if not self._heap:
            return None
        return max(0.0, self._heap[0].deadline - time.monotonic())

    async def _fire_due(self) -> None:
        now = time.monotonic()
        while self._heap and self._heap[0].deadline <= now:
            entry = heapq.heappop(self._heap)
            if self._latest.get(entry.path) != entry.seq:
                continue   # superseded or cancelled
            del self._latest[entry.path]
            logger.info("Retention expired for %s", entry.path)
            try:
                await self._sink(entry.path)
            except Exception:
                logger.exception("Failed to enqueue removal of %s", entry.path)
