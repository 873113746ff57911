from __future__ import annotations

import logging
from datetime import timedelta

from app.application.dto.auth import NewSession
from app.application.ports.credential_store_port import CredentialStorePort
from app.domain.entities.user import AuthSession
from app.domain.services.clock import Clock, utcnow
from app.domain.services.tokens import generate_token


logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = timedelta(days=7)


class SessionManager:
    """First-party bearer sessions.

    A user holds at most one session: creating a new one removes the previous
    ones in the same transaction. Lifetime is fixed at creation and never
    extended; logging in again always yields a brand-new token.
    """

    def __init__(
        self,
        *,
        store: CredentialStorePort,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Clock = utcnow,
    ):
        self._store = store
        self._ttl = ttl
        self._clock = clock

    @staticmethod
    def generate_token() -> str:
        return generate_token()

    async def create_session(self, new_session: NewSession) -> str:
        now = self._clock()
        session = AuthSession(
            id=self.generate_token(),
            user_id=new_session.user_id,
            platform=new_session.platform,
            platform_user_id=new_session.platform_user_id,
            platform_session_id=new_session.platform_session_id,
            username=new_session.username,
            is_admin=new_session.is_admin,
            created_at=now,
            expires_at=now + self._ttl,
        )

        async def _tx(store: CredentialStorePort) -> int:
            replaced = await store.delete_sessions_for_user(user_id=new_session.user_id)
            await store.insert_session(session)
            return replaced

        replaced = await self._store.run_in_transaction(_tx)
        logger.info(
            "session_manager: session_created user_id=%s platform=%s replaced=%s",
            new_session.user_id,
            new_session.platform,
            replaced,
        )
        return session.id

    async def validate_session(self, session_id: str | None) -> AuthSession | None:
        if not session_id:
            return None
        return await self._store.find_active_session(session_id=session_id, now=self._clock())

    async def delete_session(self, session_id: str) -> None:
        if not session_id:
            return
        await self._store.delete_session(session_id=session_id)

    async def sweep_expired(self) -> int:
        deleted = await self._store.delete_expired_sessions(now=self._clock())
        if deleted:
            logger.info("session_manager: swept_expired_sessions count=%s", deleted)
        return deleted
