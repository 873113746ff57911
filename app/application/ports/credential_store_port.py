from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Protocol, TypeVar

from app.domain.entities.user import AuthSession, OAuthState, Platform, User


TStoreResult = TypeVar("TStoreResult")


class UniqueViolationError(Exception):
    """Raised by a store when an insert collides with a unique constraint.

    ``field`` names the colliding column: ``platform_user_id`` or ``username``
    for users, ``unknown`` when the store cannot tell which index fired.
    """

    def __init__(self, field: str, message: str = "Unique constraint violated."):
        self.field = field
        super().__init__(message)


class CredentialStorePort(Protocol):
    async def run_in_transaction(
        self,
        fn: Callable[[CredentialStorePort], Awaitable[TStoreResult]],
    ) -> TStoreResult:
        ...

    async def find_user_by_platform_id(self, *, platform: Platform, platform_user_id: str) -> User | None:
        ...

    async def get_user_by_id(self, *, user_id: str) -> User | None:
        ...

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
        ...

    async def touch_last_login(self, *, user_id: str, at: datetime) -> None:
        ...

    async def insert_session(self, session: AuthSession) -> None:
        ...

    async def delete_sessions_for_user(self, *, user_id: str) -> int:
        ...

    async def find_active_session(self, *, session_id: str, now: datetime) -> AuthSession | None:
        ...

    async def delete_session(self, *, session_id: str) -> None:
        ...

    async def delete_expired_sessions(self, *, now: datetime) -> int:
        ...

    async def insert_oauth_state(self, record: OAuthState) -> None:
        ...

    async def consume_oauth_state(self, *, state: str, platform: Platform) -> OAuthState | None:
        ...

    async def delete_expired_oauth_states(self, *, now: datetime) -> int:
        ...
