from __future__ import annotations

from fastapi import Depends, Request

from app.application.use_cases.authenticate_callback import AuthenticateCallbackUseCase
from app.application.use_cases.get_authorization_url import GetAuthorizationUrlUseCase
from app.application.use_cases.get_me import GetMeUseCase
from app.application.use_cases.logout_session import LogoutSessionUseCase
from app.application.use_cases.oauth_relay import (
    CreatePollIdUseCase,
    PollRelayResultUseCase,
    StoreRelayResultUseCase,
)
from app.application.use_cases.verify_session import VerifySessionUseCase
from app.core.auth import require_bearer_token
from app.core.container import AuthServices
from app.domain.entities.user import AuthSession
from app.domain.exceptions import InvalidSessionError


def get_services(request: Request) -> AuthServices:
    return request.app.state.services


def get_authorization_url_use_case(
    services: AuthServices = Depends(get_services),
) -> GetAuthorizationUrlUseCase:
    return GetAuthorizationUrlUseCase(adapters=services.adapters)


def get_authenticate_callback_use_case(
    services: AuthServices = Depends(get_services),
) -> AuthenticateCallbackUseCase:
    return AuthenticateCallbackUseCase(
        adapters=services.adapters,
        store=services.store,
        relay=services.relay,
    )


def get_verify_session_use_case(
    services: AuthServices = Depends(get_services),
) -> VerifySessionUseCase:
    return VerifySessionUseCase(sessions=services.sessions, adapters=services.adapters)


def get_get_me_use_case(services: AuthServices = Depends(get_services)) -> GetMeUseCase:
    return GetMeUseCase(character_port=services.character_port)


def get_logout_session_use_case(
    services: AuthServices = Depends(get_services),
) -> LogoutSessionUseCase:
    return LogoutSessionUseCase(sessions=services.sessions)


def get_create_poll_id_use_case(services: AuthServices = Depends(get_services)) -> CreatePollIdUseCase:
    return CreatePollIdUseCase(relay=services.relay, clock=services.clock)


def get_poll_relay_result_use_case(
    services: AuthServices = Depends(get_services),
) -> PollRelayResultUseCase:
    return PollRelayResultUseCase(relay=services.relay)


def get_store_relay_result_use_case(
    services: AuthServices = Depends(get_services),
) -> StoreRelayResultUseCase:
    return StoreRelayResultUseCase(relay=services.relay)


async def get_current_session(
    token: str = Depends(require_bearer_token),
    services: AuthServices = Depends(get_services),
) -> AuthSession:
    session = await services.sessions.validate_session(token)
    if session is None:
        raise InvalidSessionError("Invalid or expired session.")
    return session
