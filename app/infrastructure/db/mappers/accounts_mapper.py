from __future__ import annotations

from typing import Any, Mapping

from app.application.dto.me import CharacterSummary
from app.domain.entities.user import AuthSession, OAuthState, User


def _as_str(value: Any) -> str:
    return str(value)


def map_row_to_user(row: Mapping[str, Any]) -> User:
    return User(
        id=_as_str(row["id"]),
        platform=row["platform"],
        platform_user_id=row["platform_user_id"],
        username=row["username"],
        email=row.get("email"),
        is_admin=bool(row["is_admin"]),
        created_at=row["created_at"],
        last_login=row["last_login"],
    )


def map_row_to_auth_session(row: Mapping[str, Any]) -> AuthSession:
    return AuthSession(
        id=row["session_id"],
        user_id=_as_str(row["user_id"]),
        platform=row["platform"],
        platform_user_id=row["platform_user_id"],
        platform_session_id=row.get("platform_session_id"),
        username=row["username"],
        is_admin=bool(row["is_admin"]),
        created_at=row["created_at"],
        expires_at=row["expires_at"],
    )


def map_row_to_oauth_state(row: Mapping[str, Any]) -> OAuthState:
    return OAuthState(
        state=row["state"],
        platform=row["platform"],
        created_at=row["created_at"],
        expires_at=row["expires_at"],
    )


def map_row_to_character_summary(row: Mapping[str, Any]) -> CharacterSummary:
    return CharacterSummary(
        id=_as_str(row["id"]),
        created_at=row["created_at"],
        last_edited_at=row.get("last_edited_at"),
    )
