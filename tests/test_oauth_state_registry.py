from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

from app.application.dto.auth import StateValidation
from app.application.services.oauth_state_registry import OAuthStateRegistry
from app.domain.services.oauth_state import decode_state
from app.domain.services.tokens import generate_token
from app.infrastructure.memory.memory_credential_store import MemoryCredentialStore


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


def _registry() -> tuple[OAuthStateRegistry, FakeClock]:
    clock = FakeClock(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))
    return OAuthStateRegistry(store=MemoryCredentialStore(), clock=clock), clock


def test_issue_returns_state_expiring_after_ten_minutes():
    registry, clock = _registry()

    issued = asyncio.run(registry.issue("google"))

    assert issued.expires_at == clock.now + timedelta(minutes=10)
    assert decode_state(issued.state) is not None


def test_issue_embeds_relay_poll_id():
    registry, _clock = _registry()
    poll_id = generate_token()

    issued = asyncio.run(registry.issue("google", poll_id=poll_id))

    assert decode_state(issued.state).poll_id == poll_id


def test_state_validates_exactly_once():
    registry, _clock = _registry()

    async def scenario():
        issued = await registry.issue("google")
        first = await registry.validate_and_consume(issued.state, "google")
        second = await registry.validate_and_consume(issued.state, "google")
        return first, second

    first, second = asyncio.run(scenario())

    assert first is StateValidation.OK
    assert second is StateValidation.UNKNOWN


def test_state_is_bound_to_its_platform():
    registry, _clock = _registry()

    async def scenario():
        issued = await registry.issue("google")
        wrong = await registry.validate_and_consume(issued.state, "itch")
        right = await registry.validate_and_consume(issued.state, "google")
        return wrong, right

    wrong, right = asyncio.run(scenario())

    assert wrong is StateValidation.UNKNOWN
    assert right is StateValidation.OK


def test_state_is_valid_just_before_expiry():
    registry, clock = _registry()

    async def scenario():
        issued = await registry.issue("itch")
        clock.advance(timedelta(minutes=10) - timedelta(seconds=1))
        return await registry.validate_and_consume(issued.state, "itch")

    assert asyncio.run(scenario()) is StateValidation.OK


def test_state_is_expired_just_after_expiry_and_gone_afterwards():
    registry, clock = _registry()

    async def scenario():
        issued = await registry.issue("itch")
        clock.advance(timedelta(minutes=10, seconds=1))
        first = await registry.validate_and_consume(issued.state, "itch")
        second = await registry.validate_and_consume(issued.state, "itch")
        return first, second

    first, second = asyncio.run(scenario())

    assert first is StateValidation.EXPIRED
    assert second is StateValidation.UNKNOWN


def test_sweep_expired_only_removes_old_states():
    registry, clock = _registry()

    async def scenario():
        old = await registry.issue("google")
        clock.advance(timedelta(minutes=8))
        fresh = await registry.issue("google")
        clock.advance(timedelta(minutes=3))
        deleted = await registry.sweep_expired()
        return deleted, old, fresh

    deleted, old, fresh = asyncio.run(scenario())

    assert deleted == 1
    assert asyncio.run(registry.validate_and_consume(old.state, "google")) is StateValidation.UNKNOWN
    assert asyncio.run(registry.validate_and_consume(fresh.state, "google")) is StateValidation.OK
