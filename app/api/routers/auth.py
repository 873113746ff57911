from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from app.api.deps import get_authenticate_callback_use_case, get_authorization_url_use_case
from app.api.errors import error_response
from app.api.schemas.auth import (
    AuthorizationUrlResponse,
    CallbackRequest,
    CallbackResponse,
    ErrorResponse,
    auth_user_response,
)
from app.application.dto.auth import (
    AuthFailure,
    AuthOutcome,
    CallbackInput,
    GetAuthorizationUrlInput,
)
from app.application.use_cases.authenticate_callback import AuthenticateCallbackUseCase
from app.application.use_cases.get_authorization_url import GetAuthorizationUrlUseCase
from app.domain.entities.user import Platform


router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}

# Which callback field carries the provider credential.
CREDENTIAL_FIELDS: dict[str, str] = {
    "google": "code",
    "itch": "access_token",
    "legacy-session": "session_id",
}


def _callback_response(outcome: AuthOutcome) -> CallbackResponse | JSONResponse:
    if isinstance(outcome, AuthFailure):
        return error_response(outcome.error, outcome.message)
    return CallbackResponse(
        session_id=outcome.session_id,
        user=auth_user_response(outcome.user),
        message=outcome.message,
    )


@router.get(
    "/v1/auth/{platform}/authorization-url",
    response_model=AuthorizationUrlResponse,
    response_model_exclude_none=True,
)
async def get_authorization_url(
    platform: Platform,
    relay_poll_id: str | None = Query(default=None),
    use_case: GetAuthorizationUrlUseCase = Depends(get_authorization_url_use_case),
):
    output = await use_case.execute(GetAuthorizationUrlInput(platform=platform, poll_id=relay_poll_id))
    return AuthorizationUrlResponse(
        auth_url=output.auth_url,
        state=output.state,
        expires_at=output.expires_at,
        session_id=output.session_id,
    )


@router.post("/v1/auth/{platform}/callback", response_model=CallbackResponse, responses=ERROR_RESPONSES)
async def post_callback(
    platform: Platform,
    req: CallbackRequest,
    use_case: AuthenticateCallbackUseCase = Depends(get_authenticate_callback_use_case),
):
    outcome = await use_case.execute(
        CallbackInput(
            platform=platform,
            credential=getattr(req, CREDENTIAL_FIELDS[platform]),
            state=req.state,
            code_verifier=req.code_verifier,
        )
    )
    return _callback_response(outcome)


@router.get("/v1/auth/{platform}/callback", response_model=CallbackResponse, responses=ERROR_RESPONSES)
async def get_callback(
    platform: Platform,
    code: str | None = Query(default=None),
    access_token: str | None = Query(default=None),
    session_id: str | None = Query(default=None),
    state: str | None = Query(default=None),
    use_case: AuthenticateCallbackUseCase = Depends(get_authenticate_callback_use_case),
):
    credentials = {"code": code, "access_token": access_token, "session_id": session_id}
    outcome = await use_case.execute(
        CallbackInput(
            platform=platform,
            credential=credentials[CREDENTIAL_FIELDS[platform]],
            state=state,
        )
    )
    return _callback_response(outcome)
