from __future__ import annotations

from collections.abc import Mapping

from app.application.dto.auth import AuthFailure, AuthOutcome, AuthUserOutput
from app.application.dto.relay import RelayResult
from app.application.services.provider_adapters import ProviderAdapter
from app.domain.entities.user import AuthSession, Platform, User
from app.domain.exceptions import ConfigurationError


PLATFORM_LABELS: dict[str, str] = {
    "google": "Google",
    "itch": "Itch.io",
    "legacy-session": "Legacy session",
}


def select_adapter(adapters: Mapping[Platform, ProviderAdapter], platform: Platform) -> ProviderAdapter:
    adapter = adapters.get(platform)
    if adapter is None:
        raise ConfigurationError(platform, [f"{platform} provider adapter"])
    return adapter


def build_auth_user_output(user: User) -> AuthUserOutput:
    return AuthUserOutput(
        id=user.id,
        username=user.username,
        platform=user.platform,
        is_admin=user.is_admin,
    )


def build_session_user_output(session: AuthSession) -> AuthUserOutput:
    return AuthUserOutput(
        id=session.user_id,
        username=session.username,
        platform=session.platform,
        is_admin=session.is_admin,
    )


def outcome_to_relay_result(outcome: AuthOutcome) -> RelayResult:
    if isinstance(outcome, AuthFailure):
        return RelayResult(success=False, error=outcome.error.value, message=outcome.message)
    return RelayResult(
        success=True,
        session_id=outcome.session_id,
        user={
            "id": outcome.user.id,
            "username": outcome.user.username,
            "platform": outcome.user.platform,
            "isAdmin": outcome.user.is_admin,
        },
        message=outcome.message,
    )
