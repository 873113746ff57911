from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal


Platform = Literal["google", "itch", "legacy-session"]


@dataclass(frozen=True)
class User:
    id: str
    platform: Platform
    platform_user_id: str
    username: str
    email: str | None
    is_admin: bool
    created_at: datetime
    last_login: datetime


@dataclass(frozen=True)
class AuthSession:
    id: str
    user_id: str
    platform: Platform
    platform_user_id: str
    platform_session_id: str | None
    username: str
    is_admin: bool
    created_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class OAuthState:
    state: str
    platform: Platform
    created_at: datetime
    expires_at: datetime
