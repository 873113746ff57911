from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union

from app.domain.entities.user import Platform, User
from app.domain.exceptions import ErrorCode


@dataclass(frozen=True)
class ProviderIdentity:
    external_id: str
    username: str
    email: str | None = None
    platform_session_id: str | None = None


@dataclass(frozen=True)
class AuthorizationRequest:
    url: str
    # Provider-side session the callback must present, when the provider issues one up front.
    session_id: str | None = None


@dataclass(frozen=True)
class AuthorizationUrlOutput:
    auth_url: str
    state: str
    expires_at: datetime
    session_id: str | None = None


@dataclass(frozen=True)
class IssuedState:
    state: str
    expires_at: datetime


class StateValidation(str, Enum):
    OK = "ok"
    EXPIRED = "expired"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class NewSession:
    user_id: str
    platform: Platform
    platform_user_id: str
    platform_session_id: str | None
    username: str
    is_admin: bool


@dataclass(frozen=True)
class AuthenticationResult:
    session_id: str
    user: User


@dataclass(frozen=True)
class GetAuthorizationUrlInput:
    platform: Platform
    poll_id: str | None


@dataclass(frozen=True)
class CallbackInput:
    platform: Platform
    credential: str | None
    state: str | None
    code_verifier: str | None = None


@dataclass(frozen=True)
class AuthUserOutput:
    id: str
    username: str
    platform: Platform
    is_admin: bool


@dataclass(frozen=True)
class AuthSuccess:
    session_id: str
    user: AuthUserOutput
    message: str
    success: bool = True


@dataclass(frozen=True)
class AuthFailure:
    error: ErrorCode
    message: str
    success: bool = False


AuthOutcome = Union[AuthSuccess, AuthFailure]


@dataclass(frozen=True)
class VerifySessionInput:
    session_id: str
    revalidate: bool = False
