"""Tests for the retention scheduler and the reclaim worker.

The scheduler is driven with a recording sink and TTLs of a few tens of
milliseconds; the worker runs against a real store in a temp dir.
"""
import asyncio
from typing import Callable, List

import pytest

from remcpy.retention.scheduler import RetentionScheduler
from remcpy.retention.worker import ReclaimWorker
from remcpy.store.errors import DeleteFailed
from remcpy.store.service import ContentStore


async def _wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


class _RecordingSink:
    def __init__(self) -> None:
        self.paths: List[str] = []

    async def __call__(self, path: str) -> None:
        self.paths.append(path)


# ---------------------------------------------------------------------------
# RetentionScheduler
# ---------------------------------------------------------------------------


class TestRetentionScheduler:
    @pytest.mark.asyncio
    async def test_fires_after_ttl(self):
        sink = _RecordingSink()
        scheduler = RetentionScheduler(sink, default_ttl_seconds=0.05)
        await scheduler.start()
        try:
            scheduler.arm("store/@a")
            assert sink.paths == []
            assert scheduler.pending == 1
            await _wait_for(lambda: sink.paths == ["store/@a"])
            assert scheduler.pending == 0
        finally:
            await scheduler.stop()

    @pytest.mark.asyncio
    async def test_does_not_fire_early(self):
        sink = _RecordingSink()
        scheduler = RetentionScheduler(sink, default_ttl_seconds=60)
        await scheduler.start()
        try:
            scheduler.arm("store/@a")
            await asyncio.sleep(0.1)
            assert sink.paths == []
        finally:
            await scheduler.stop()

    @pytest.mark.asyncio
    async def test_fires_in_deadline_order(self):
        sink = _RecordingSink()
        scheduler = RetentionScheduler(sink)
        await scheduler.start()
        try:
            scheduler.arm("late", ttl_seconds=0.2)
            scheduler.arm("early", ttl_seconds=0.05)
            await _wait_for(lambda: len(sink.paths) == 2)
            assert sink.paths == ["early", "late"]
        finally:
            await scheduler.stop()

    @pytest.mark.asyncio
    async def test_rearm_supersedes_previous_expiry(self):
        sink = _RecordingSink()
        scheduler = RetentionScheduler(sink)
        await scheduler.start()
        try:
            scheduler.arm("store/@id", ttl_seconds=0.05)
            scheduler.arm("store/@id", ttl_seconds=0.4)
            assert scheduler.pending == 1
            await asyncio.sleep(0.2)
            assert sink.paths == []
            await _wait_for(lambda: sink.paths == ["store/@id"])
            await asyncio.sleep(0.1)
            assert sink.paths == ["store/@id"]
        finally:
            await scheduler.stop()

    @pytest.mark.asyncio
    async def test_cancel_drops_pending_expiry(self):
        sink = _RecordingSink()
        scheduler = RetentionScheduler(sink, default_ttl_seconds=0.05)
        await scheduler.start()
        try:
            scheduler.arm("store/@a")
            assert scheduler.cancel("store/@a") is True
            assert scheduler.cancel("store/@a") is False
            await asyncio.sleep(0.15)
            assert sink.paths == []
        finally:
            await scheduler.stop()

    @pytest.mark.asyncio
    async def test_arm_before_start_fires_once_started(self):
        sink = _RecordingSink()
        scheduler = RetentionScheduler(sink, default_ttl_seconds=0.01)
        scheduler.arm("store/@a")
        await scheduler.start()
        try:
            await _wait_for(lambda: sink.paths == ["store/@a"])
        finally:
            await scheduler.stop()

    @pytest.mark.asyncio
    async def test_sink_failure_does_not_stop_loop(self):
        delivered: List[str] = []

        async def sink(path: str) -> None:
            if path == "bad":
                raise RuntimeError("queue closed")
            delivered.append(path)

        scheduler = RetentionScheduler(sink)
        await scheduler.start()
        try:
            scheduler.arm("bad", ttl_seconds=0.01)
            scheduler.arm("good", ttl_seconds=0.05)
            await _wait_for(lambda: delivered == ["good"])
        finally:
            await scheduler.stop()

    @pytest.mark.asyncio
    async def test_stop_drops_pending(self):
        sink = _RecordingSink()
        scheduler = RetentionScheduler(sink, default_ttl_seconds=60)
        await scheduler.start()
        scheduler.arm("a")
        scheduler.arm("b")
        await scheduler.stop()
        assert scheduler.pending == 0
        assert sink.paths == []


# ---------------------------------------------------------------------------
# ReclaimWorker
# ---------------------------------------------------------------------------


@pytest.fixture
def store(tmp_path) -> ContentStore:
    s = ContentStore(tmp_path / "store")
    s.init_root()
    return s


class _FlakyStore:
    """Refuses to delete paths containing 'locked'."""

    def __init__(self) -> None:
        self.deleted: List[str] = []

    def delete(self, path: str) -> None:
        if "locked" in path:
            raise DeleteFailed(path)
        self.deleted.append(path)


class TestReclaimWorker:
    @pytest.mark.asyncio
    async def test_deletes_submitted_path(self, store):
        path = store.path_for("report")
        path.write_bytes(b"hello world")
        worker = ReclaimWorker(store)
        await worker.start()
        try:
            await worker.submit(path)
            await worker.join()
            assert not path.exists()
            assert worker.deleted == 1
        finally:
            await worker.close()

    @pytest.mark.asyncio
    async def test_already_removed_path_is_fine(self, store):
        worker = ReclaimWorker(store)
        await worker.start()
        try:
            await worker.submit(store.path_for("never-uploaded"))
            await worker.join()
            assert worker.failed == 0
        finally:
            await worker.close()

    @pytest.mark.asyncio
    async def test_failure_is_logged_and_loop_continues(self, caplog):
        flaky = _FlakyStore()
        worker = ReclaimWorker(flaky)  # type: ignore[arg-type]
        await worker.start()
        try:
            await worker.submit("store/@locked")
            await worker.submit("store/@free")
            await worker.join()
            assert worker.failed == 1
            assert flaky.deleted == ["store/@free"]
            assert worker.running
            assert "Error removing file" in caplog.text
        finally:
            await worker.close()

    @pytest.mark.asyncio
    async def test_close_drains_queue_then_stops(self):
        flaky = _FlakyStore()
        worker = ReclaimWorker(flaky)  # type: ignore[arg-type]
        await worker.start()
        for name in ("a", "b", "c"):
            await worker.submit(f"store/@{name}")
        await worker.close()
        assert flaky.deleted == ["store/@a", "store/@b", "store/@c"]
        assert not worker.running

    @pytest.mark.asyncio
    async def test_submit_before_start_raises(self, store):
        worker = ReclaimWorker(store)
        with pytest.raises(RuntimeError):
            await worker.submit(store.path_for("x"))

    @pytest.mark.asyncio
    async def test_scheduler_feeds_worker(self, store):
        path = store.path_for("ephemeral")
        path.write_bytes(b"bye")
        worker = ReclaimWorker(store)
        await worker.start()
        scheduler = RetentionScheduler(worker.submit, default_ttl_seconds=0.05)
        await scheduler.start()
        try:
            scheduler.arm(path)
            await _wait_for(lambda: not path.exists())
        finally:
            await scheduler.stop()
            await worker.close()
