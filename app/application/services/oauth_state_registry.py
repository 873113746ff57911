from __future__ import annotations

import logging
from datetime import timedelta

from app.application.dto.auth import IssuedState, StateValidation
from app.application.ports.credential_store_port import CredentialStorePort
from app.domain.entities.user import OAuthState, Platform
from app.domain.services.clock import Clock, utcnow
from app.domain.services.oauth_state import StatePayload, encode_state


logger = logging.getLogger(__name__)

DEFAULT_STATE_TTL = timedelta(minutes=10)


class OAuthStateRegistry:
    """Issues anti-forgery states and validates each one at most once."""

    def __init__(
        self,
        *,
        store: CredentialStorePort,
        ttl: timedelta = DEFAULT_STATE_TTL,
        clock: Clock = utcnow,
    ):
        self._store = store
        self._ttl = ttl
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    async def issue(self, platform: Platform, *, poll_id: str | None = None) -> IssuedState:
        now = self._clock()
        state = encode_state(StatePayload.new(poll_id))
        expires_at = now + self._ttl
        await self._store.insert_oauth_state(
            OAuthState(state=state, platform=platform, created_at=now, expires_at=expires_at)
        )
        return IssuedState(state=state, expires_at=expires_at)

    async def validate_and_consume(self, state: str, platform: Platform) -> StateValidation:
        # The store deletes the row as it reads it, so a replay finds nothing.
        record = await self._store.consume_oauth_state(state=state, platform=platform)
        if record is None:
            logger.info("oauth_state_registry: unknown_state platform=%s", platform)
            return StateValidation.UNKNOWN
        if record.expires_at <= self._clock():
            logger.info("oauth_state_registry: expired_state platform=%s", platform)
            return StateValidation.EXPIRED
        return StateValidation.OK

    async def sweep_expired(self) -> int:
        deleted = await self._store.delete_expired_oauth_states(now=self._clock())
        if deleted:
            logger.info("oauth_state_registry: swept_expired_states count=%s", deleted)
        return deleted
