from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

from app.application.dto.relay import RelayResult
from app.domain.services.tokens import is_token
from app.infrastructure.relay.memory_relay_store import MemoryRelayStore


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


def _store() -> tuple[MemoryRelayStore, FakeClock]:
    clock = FakeClock(datetime(2024, 1, 1, tzinfo=timezone.utc))
    return MemoryRelayStore(clock=clock), clock


def test_generate_poll_id_is_a_hex_token():
    store, _clock = _store()

    assert is_token(store.generate_poll_id())


def test_result_is_read_once():
    store, _clock = _store()
    result = RelayResult(success=True, session_id="s" * 64, user={"id": "u-1"}, message="ok")

    async def scenario():
        await store.store("poll-1", result)
        return await store.get("poll-1"), await store.get("poll-1")

    first, second = asyncio.run(scenario())

    assert first == result
    assert second is None


def test_unknown_poll_id_is_pending():
    store, _clock = _store()

    assert asyncio.run(store.get("missing")) is None


def test_expired_result_is_not_returned():
    store, clock = _store()

    async def scenario():
        await store.store("poll-1", RelayResult(success=False, error="invalid_state"))
        clock.advance(timedelta(minutes=10, seconds=1))
        return await store.get("poll-1")

    assert asyncio.run(scenario()) is None


def test_sweep_drops_only_expired_records():
    store, clock = _store()

    async def scenario():
        await store.store("old", RelayResult(success=True))
        clock.advance(timedelta(minutes=6))
        await store.store("fresh", RelayResult(success=True))
        clock.advance(timedelta(minutes=5))
        return await store.sweep()

    assert asyncio.run(scenario()) == 1
    assert len(store) == 1


def test_background_sweeper_starts_and_stops():
    clock = FakeClock(datetime(2024, 1, 1, tzinfo=timezone.utc))
    store = MemoryRelayStore(clock=clock, sweep_interval_seconds=0.01)

    async def scenario():
        await store.store("old", RelayResult(success=True))
        clock.advance(timedelta(minutes=11))
        store.start()
        for _ in range(100):
            if len(store) == 0:
                break
            await asyncio.sleep(0.01)
        await store.stop()
        return len(store)

    assert asyncio.run(scenario()) == 0
