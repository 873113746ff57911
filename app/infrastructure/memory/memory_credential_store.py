from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import datetime
from typing import TypeVar

from app.application.dto.me import CharacterSummary
from app.application.ports.credential_store_port import CredentialStorePort, UniqueViolationError
from app.domain.entities.user import AuthSession, OAuthState, Platform, User


TResult = TypeVar("TResult")


class MemoryCredentialStore(CredentialStorePort):
    """Process-local store with the same uniqueness rules as the SQL schema.

    Used when no database is configured and in tests. Data is lost on restart.
    """

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._sessions: dict[str, AuthSession] = {}
        self._states: dict[str, OAuthState] = {}
        self._tx_lock = asyncio.Lock()

    async def run_in_transaction(
        self,
        fn: Callable[[CredentialStorePort], Awaitable[TResult]],
    ) -> TResult:
        async with self._tx_lock:
            return await fn(self)

    async def find_user_by_platform_id(self, *, platform: Platform, platform_user_id: str) -> User | None:
        for user in self._users.values():
            if user.platform == platform and user.platform_user_id == platform_user_id:
                return user
        return None

    async def get_user_by_id(self, *, user_id: str) -> User | None:
        return self._users.get(user_id)

    async def create_user(
        self,
        *,
        user_id: str,
        platform: Platform,
        platform_user_id: str,
        username: str,
        email: str | None,
        created_at: datetime,
    ) -> User:
        for user in self._users.values():
            if user.platform != platform:
                continue
            if user.platform_user_id == platform_user_id:
                raise UniqueViolationError("platform_user_id")
            if user.username == username:
                raise UniqueViolationError("username")
        user = User(
            id=user_id,
            platform=platform,
            platform_user_id=platform_user_id,
            username=username,
            email=email,
            is_admin=False,
            created_at=created_at,
            last_login=created_at,
        )
        self._users[user_id] = user
        return user

    async def touch_last_login(self, *, user_id: str, at: datetime) -> None:
        user = self._users.get(user_id)
        if user is not None:
            self._users[user_id] = replace(user, last_login=at)

    async def insert_session(self, session: AuthSession) -> None:
        # One row per user, the latest insert wins.
        for existing_id, existing in list(self._sessions.items()):
            if existing.user_id == session.user_id:
                del self._sessions[existing_id]
        self._sessions[session.id] = session

    async def delete_sessions_for_user(self, *, user_id: str) -> int:
        doomed = [sid for sid, session in self._sessions.items() if session.user_id == user_id]
        for sid in doomed:
            del self._sessions[sid]
        return len(doomed)

    async def find_active_session(self, *, session_id: str, now: datetime) -> AuthSession | None:
        session = self._sessions.get(session_id)
        if session is None or session.expires_at <= now:
            return None
        return session

    async def delete_session(self, *, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    async def delete_expired_sessions(self, *, now: datetime) -> int:
        doomed = [sid for sid, session in self._sessions.items() if session.expires_at <= now]
        for sid in doomed:
            del self._sessions[sid]
        return len(doomed)

    async def insert_oauth_state(self, record: OAuthState) -> None:
        if record.state in self._states:
            raise UniqueViolationError("state")
        self._states[record.state] = record

    async def consume_oauth_state(self, *, state: str, platform: Platform) -> OAuthState | None:
        record = self._states.get(state)
        if record is None or record.platform != platform:
            return None
        del self._states[state]
        return record

    async def delete_expired_oauth_states(self, *, now: datetime) -> int:
        doomed = [key for key, record in self._states.items() if record.expires_at <= now]
        for key in doomed:
            del self._states[key]
        return len(doomed)


class MemoryCharacterRepository:
    def __init__(self, characters: dict[str, CharacterSummary] | None = None):
        self._characters = dict(characters or {})

    async def find_active_character(self, *, user_id: str) -> CharacterSummary | None:
        return self._characters.get(user_id)
