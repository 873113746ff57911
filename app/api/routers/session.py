from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.api.deps import (
    get_current_session,
    get_get_me_use_case,
    get_logout_session_use_case,
    get_verify_session_use_case,
)
from app.api.schemas.auth import auth_user_response
from app.api.schemas.me import CharacterSummaryResponse, LogoutResponse, MeResponse, VerifySessionResponse
from app.application.dto.auth import VerifySessionInput
from app.application.use_cases.get_me import GetMeUseCase
from app.application.use_cases.logout_session import LogoutSessionUseCase
from app.application.use_cases.verify_session import VerifySessionUseCase
from app.core.auth import require_bearer_token
from app.domain.entities.user import AuthSession
from app.domain.exceptions import InvalidSessionError


router = APIRouter()


@router.post("/v1/auth/session/verify", response_model=VerifySessionResponse)
async def verify_session(
    revalidate: bool = Query(default=False),
    token: str = Depends(require_bearer_token),
    use_case: VerifySessionUseCase = Depends(get_verify_session_use_case),
):
    user = await use_case.execute(VerifySessionInput(session_id=token, revalidate=revalidate))
    if user is None:
        raise InvalidSessionError("Invalid or expired session.")
    return VerifySessionResponse(valid=True, user=auth_user_response(user))


@router.get("/v1/auth/session/me", response_model=MeResponse)
async def get_me(
    session: AuthSession = Depends(get_current_session),
    use_case: GetMeUseCase = Depends(get_get_me_use_case),
):
    output = await use_case.execute(session=session)
    character = None
    if output.character is not None:
        character = CharacterSummaryResponse(
            id=output.character.id,
            created_at=output.character.created_at,
            last_edited_at=output.character.last_edited_at,
        )
    return MeResponse(
        user=auth_user_response(output.user),
        character=character,
        has_character=output.has_character,
    )


@router.delete("/v1/auth/session", response_model=LogoutResponse)
async def logout(
    token: str = Depends(require_bearer_token),
    use_case: LogoutSessionUseCase = Depends(get_logout_session_use_case),
):
    await use_case.execute(session_id=token)
    return LogoutResponse(success=True, message="Logout successful. Session cleared from server.")
