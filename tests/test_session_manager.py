from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

from app.application.dto.auth import NewSession
from app.application.services.session_manager import SessionManager
from app.domain.services.tokens import is_token
from app.infrastructure.memory.memory_credential_store import MemoryCredentialStore


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class CountingStore(MemoryCredentialStore):
    def __init__(self):
        super().__init__()
        self.lookups = 0

    async def find_active_session(self, *, session_id, now):
        self.lookups += 1
        return await super().find_active_session(session_id=session_id, now=now)


def _new_session(user_id: str = "user-1") -> NewSession:
    return NewSession(
        user_id=user_id,
        platform="google",
        platform_user_id="g-1",
        platform_session_id="refresh-1",
        username="alice",
        is_admin=False,
    )


def _manager() -> tuple[SessionManager, CountingStore, FakeClock]:
    store = CountingStore()
    clock = FakeClock(datetime(2024, 1, 1, tzinfo=timezone.utc))
    return SessionManager(store=store, clock=clock), store, clock


def test_create_session_returns_opaque_token_with_seven_day_lifetime():
    manager, _store, clock = _manager()

    async def scenario():
        session_id = await manager.create_session(_new_session())
        return session_id, await manager.validate_session(session_id)

    session_id, session = asyncio.run(scenario())

    assert is_token(session_id)
    assert session is not None
    assert session.user_id == "user-1"
    assert session.platform_session_id == "refresh-1"
    assert session.expires_at == clock.now + timedelta(days=7)


def test_new_session_replaces_previous_one_for_same_user():
    manager, _store, _clock = _manager()

    async def scenario():
        first = await manager.create_session(_new_session())
        second = await manager.create_session(_new_session())
        return (
            first,
            second,
            await manager.validate_session(first),
            await manager.validate_session(second),
        )

    first, second, old, new = asyncio.run(scenario())

    assert first != second
    assert old is None
    assert new is not None


def test_sessions_of_other_users_are_untouched():
    manager, _store, _clock = _manager()

    async def scenario():
        alice = await manager.create_session(_new_session("user-1"))
        await manager.create_session(_new_session("user-2"))
        return await manager.validate_session(alice)

    assert asyncio.run(scenario()) is not None


def test_session_expires_at_fixed_deadline():
    manager, _store, clock = _manager()

    async def scenario():
        session_id = await manager.create_session(_new_session())
        clock.advance(timedelta(days=7) - timedelta(seconds=1))
        before = await manager.validate_session(session_id)
        clock.advance(timedelta(seconds=2))
        after = await manager.validate_session(session_id)
        return before, after

    before, after = asyncio.run(scenario())

    assert before is not None
    assert after is None


def test_validate_session_skips_store_for_empty_input():
    manager, store, _clock = _manager()

    assert asyncio.run(manager.validate_session("")) is None
    assert asyncio.run(manager.validate_session(None)) is None
    assert store.lookups == 0


def test_delete_session_is_idempotent():
    manager, _store, _clock = _manager()

    async def scenario():
        session_id = await manager.create_session(_new_session())
        await manager.delete_session(session_id)
        await manager.delete_session(session_id)
        await manager.delete_session("unknown")
        return await manager.validate_session(session_id)

    assert asyncio.run(scenario()) is None


def test_sweep_expired_counts_deleted_sessions():
    manager, _store, clock = _manager()

    async def scenario():
        await manager.create_session(_new_session("user-1"))
        clock.advance(timedelta(days=8))
        await manager.create_session(_new_session("user-2"))
        return await manager.sweep_expired()

    assert asyncio.run(scenario()) == 1
