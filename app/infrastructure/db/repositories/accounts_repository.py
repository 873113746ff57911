from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import TypeVar

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from app.application.ports.credential_store_port import CredentialStorePort, UniqueViolationError
from app.domain.entities.user import AuthSession, OAuthState, Platform, User
from app.infrastructure.db.mappers.accounts_mapper import (
    map_row_to_auth_session,
    map_row_to_oauth_state,
    map_row_to_user,
)


logger = logging.getLogger(__name__)

TResult = TypeVar("TResult")

USER_COLUMNS = "id, platform, platform_user_id, username, email, is_admin, created_at, last_login"

SESSION_COLUMNS = (
    "session_id, user_id, platform, platform_user_id, platform_session_id, "
    "username, is_admin, created_at, expires_at"
)

UNIQUE_VIOLATION = "23505"

# Both the declared names and PostgreSQL's defaults for an unnamed UNIQUE (...).
_CONSTRAINT_FIELDS = {
    "uq_users_platform_username": "username",
    "users_platform_username_key": "username",
    "uq_users_platform_platform_user_id": "platform_user_id",
    "users_platform_platform_user_id_key": "platform_user_id",
}

# SQLite reports columns instead of constraint names.
_MESSAGE_FIELDS = (
    ("users.username", "username"),
    ("users.platform_user_id", "platform_user_id"),
)


def _driver_errors(exc: IntegrityError) -> list[object]:
    # asyncpg errors sit behind SQLAlchemy's DBAPI adapter as __cause__.
    orig = exc.orig
    errors = [orig]
    if orig is not None and orig.__cause__ is not None:
        errors.append(orig.__cause__)
    return errors


def _sqlstate(exc: IntegrityError) -> str | None:
    for error in _driver_errors(exc):
        code = getattr(error, "sqlstate", None) or getattr(error, "pgcode", None)
        if isinstance(code, str) and code:
            return code
    return None


def _constraint_name(exc: IntegrityError) -> str | None:
    for error in _driver_errors(exc):
        name = getattr(error, "constraint_name", None)
        if name is None:
            name = getattr(getattr(error, "diag", None), "constraint_name", None)
        if isinstance(name, str) and name:
            return name
    return None


def is_unique_violation(exc: IntegrityError) -> bool:
    sqlstate = _sqlstate(exc)
    if sqlstate is not None:
        return sqlstate == UNIQUE_VIOLATION
    return "unique" in str(exc.orig).lower()


def classify_integrity_error(exc: IntegrityError) -> str:
    """Name the colliding users column, or ``unknown``."""
    name = _constraint_name(exc)
    if name in _CONSTRAINT_FIELDS:
        return _CONSTRAINT_FIELDS[name]
    message = str(exc.orig)
    for constraint, field in _CONSTRAINT_FIELDS.items():
        if constraint in message:
            return field
    for marker, field in _MESSAGE_FIELDS:
        if marker in message:
            return field
    return "unknown"


class SqlAccountsRepository(CredentialStorePort):
    def __init__(self, engine: AsyncEngine, *, connection: AsyncConnection | None = None):
        self._engine = engine
        self._connection = connection

    @asynccontextmanager
    async def _begin(self) -> AsyncIterator[AsyncConnection]:
        if self._connection is not None:
            yield self._connection
            return
        async with self._engine.begin() as conn:
            yield conn

    async def run_in_transaction(
        self,
        fn: Callable[[CredentialStorePort], Awaitable[TResult]],
    ) -> TResult:
        if self._connection is not None:
            return await fn(self)
        async with self._engine.begin() as conn:
            return await fn(SqlAccountsRepository(self._engine, connection=conn))

    async def find_user_by_platform_id(self, *, platform: Platform, platform_user_id: str) -> User | None:
        sql = f"""
            SELECT {USER_COLUMNS}
            FROM users
            WHERE platform = :platform AND platform_user_id = :platform_user_id
            LIMIT 1
        """
        async with self._begin() as conn:
            result = await conn.execute(text(sql), {"platform": platform, "platform_user_id": platform_user_id})
            row = result.mappings().first()
        if row is None:
            return None
        return map_row_to_user(row)

    async def get_user_by_id(self, *, user_id: str) -> User | None:
        sql = f"""
            SELECT {USER_COLUMNS}
            FROM users
            WHERE id = :user_id
            LIMIT 1
        """
        async with self._begin() as conn:
            result = await conn.execute(text(sql), {"user_id": user_id})
            row = result.mappings().first()
        if row is None:
            return None
        return map_row_to_user(row)

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
        sql = f"""
            INSERT INTO users (
                id, platform, platform_user_id, username, email, is_admin, created_at, last_login
            ) VALUES (
                :id, :platform, :platform_user_id, :username, :email, false, :created_at, :created_at
            )
            RETURNING {USER_COLUMNS}
        """
        params = {
            "id": user_id,
            "platform": platform,
            "platform_user_id": platform_user_id,
            "username": username,
            "email": email,
            "created_at": created_at,
        }
        try:
            async with self._begin() as conn:
                result = await conn.execute(text(sql), params)
                row = result.mappings().one()
        except IntegrityError as exc:
            if not is_unique_violation(exc):
                raise
            field = classify_integrity_error(exc)
            logger.info("accounts_repository: unique_violation table=users field=%s", field)
            raise UniqueViolationError(field) from exc
        return map_row_to_user(row)

    async def touch_last_login(self, *, user_id: str, at: datetime) -> None:
        sql = """
            UPDATE users
            SET last_login = :at
            WHERE id = :user_id
        """
        async with self._begin() as conn:
            await conn.execute(text(sql), {"user_id": user_id, "at": at})

    async def insert_session(self, session: AuthSession) -> None:
        # Concurrent logins of one user: the last insert replaces the row.
        sql = f"""
            INSERT INTO user_sessions ({SESSION_COLUMNS})
            VALUES (
                :session_id, :user_id, :platform, :platform_user_id, :platform_session_id,
                :username, :is_admin, :created_at, :expires_at
            )
            ON CONFLICT (user_id) DO UPDATE SET
                session_id = excluded.session_id,
                platform = excluded.platform,
                platform_user_id = excluded.platform_user_id,
                platform_session_id = excluded.platform_session_id,
                username = excluded.username,
                is_admin = excluded.is_admin,
                created_at = excluded.created_at,
                expires_at = excluded.expires_at
        """
        params = {
            "session_id": session.id,
            "user_id": session.user_id,
            "platform": session.platform,
            "platform_user_id": session.platform_user_id,
            "platform_session_id": session.platform_session_id,
            "username": session.username,
            "is_admin": session.is_admin,
            "created_at": session.created_at,
            "expires_at": session.expires_at,
        }
        async with self._begin() as conn:
            await conn.execute(text(sql), params)

    async def delete_sessions_for_user(self, *, user_id: str) -> int:
        async with self._begin() as conn:
            result = await conn.execute(
                text("DELETE FROM user_sessions WHERE user_id = :user_id"),
                {"user_id": user_id},
            )
        return int(result.rowcount or 0)

    async def find_active_session(self, *, session_id: str, now: datetime) -> AuthSession | None:
        sql = f"""
            SELECT {SESSION_COLUMNS}
            FROM user_sessions
            WHERE session_id = :session_id AND expires_at > :now
            LIMIT 1
        """
        async with self._begin() as conn:
            result = await conn.execute(text(sql), {"session_id": session_id, "now": now})
            row = result.mappings().first()
        if row is None:
            return None
        return map_row_to_auth_session(row)

    async def delete_session(self, *, session_id: str) -> None:
        async with self._begin() as conn:
            await conn.execute(
                text("DELETE FROM user_sessions WHERE session_id = :session_id"),
                {"session_id": session_id},
            )

    async def delete_expired_sessions(self, *, now: datetime) -> int:
        async with self._begin() as conn:
            result = await conn.execute(
                text("DELETE FROM user_sessions WHERE expires_at <= :now"),
                {"now": now},
            )
        return int(result.rowcount or 0)

    async def insert_oauth_state(self, record: OAuthState) -> None:
        sql = """
            INSERT INTO oauth_states (state, platform, created_at, expires_at)
            VALUES (:state, :platform, :created_at, :expires_at)
        """
        params = {
            "state": record.state,
            "platform": record.platform,
            "created_at": record.created_at,
            "expires_at": record.expires_at,
        }
        async with self._begin() as conn:
            await conn.execute(text(sql), params)

    async def consume_oauth_state(self, *, state: str, platform: Platform) -> OAuthState | None:
        sql = """
            DELETE FROM oauth_states
            WHERE state = :state AND platform = :platform
            RETURNING state, platform, created_at, expires_at
        """
        async with self._begin() as conn:
            result = await conn.execute(text(sql), {"state": state, "platform": platform})
            row = result.mappings().first()
        if row is None:
            return None
        return map_row_to_oauth_state(row)

    async def delete_expired_oauth_states(self, *, now: datetime) -> int:
        async with self._begin() as conn:
            result = await conn.execute(
                text("DELETE FROM oauth_states WHERE expires_at <= :now"),
                {"now": now},
            )
        return int(result.rowcount or 0)
