from __future__ import annotations

import asyncio

from app.infrastructure.tasks.cleanup_scheduler import CleanupScheduler


class FakeSessionManager:
    def __init__(self, deleted: int = 0, fail: bool = False):
        self.deleted = deleted
        self.fail = fail
        self.calls = 0

    async def sweep_expired(self) -> int:
        self.calls += 1
        if self.fail:
            raise RuntimeError("database unavailable")
        return self.deleted


class FakeStateRegistry:
    def __init__(self, deleted: int = 0):
        self.deleted = deleted
        self.calls = 0

    async def sweep_expired(self) -> int:
        self.calls += 1
        return self.deleted


def test_run_once_reports_deleted_rows():
    scheduler = CleanupScheduler(
        sessions=FakeSessionManager(deleted=3),
        registry=FakeStateRegistry(deleted=2),
        interval_seconds=60,
    )

    report = asyncio.run(scheduler.run_once())

    assert report.deleted_sessions == 3
    assert report.deleted_states == 2


def test_loop_keeps_running_after_a_failed_cleanup():
    sessions = FakeSessionManager(fail=True)
    scheduler = CleanupScheduler(sessions=sessions, registry=FakeStateRegistry(), interval_seconds=0.01)

    async def scenario():
        scheduler.start()
        for _ in range(100):
            if sessions.calls >= 2:
                break
            await asyncio.sleep(0.01)
        running = scheduler.running
        await scheduler.stop()
        return running

    assert asyncio.run(scenario()) is True
    assert sessions.calls >= 2
    assert scheduler.running is False
