from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from pydantic import ValidationError

from app.api.deps import (
    get_create_poll_id_use_case,
    get_poll_relay_result_use_case,
    get_store_relay_result_use_case,
)
from app.api.schemas.relay import PollIdResponse, PollResponse, RelayResultPayload, StoreRelayResponse
from app.application.dto.relay import RelayResult
from app.application.use_cases.oauth_relay import (
    CreatePollIdUseCase,
    PollRelayResultUseCase,
    StoreRelayResultUseCase,
)
from app.domain.exceptions import InvalidRelayDataError


router = APIRouter()


@router.post("/v1/auth/relay/poll-id", response_model=PollIdResponse)
def create_poll_id(use_case: CreatePollIdUseCase = Depends(get_create_poll_id_use_case)):
    output = use_case.execute()
    return PollIdResponse(poll_id=output.poll_id, expires_at=output.expires_at)


@router.get("/v1/auth/relay/poll/{poll_id}", response_model=PollResponse)
async def poll_result(
    poll_id: str,
    use_case: PollRelayResultUseCase = Depends(get_poll_relay_result_use_case),
):
    output = await use_case.execute(poll_id=poll_id)
    if output.result is None:
        return PollResponse(status=output.status, message="OAuth flow still in progress")
    result = output.result
    return PollResponse(
        status=output.status,
        success=result.success,
        session_id=result.session_id,
        user=result.user,
        message=result.message,
        error=result.error,
    )


@router.post("/v1/auth/relay/store/{poll_id}", response_model=StoreRelayResponse)
async def store_result(
    poll_id: str,
    payload: Any = Body(default=None),
    use_case: StoreRelayResultUseCase = Depends(get_store_relay_result_use_case),
):
    if not isinstance(payload, dict):
        raise InvalidRelayDataError("Invalid OAuth result data.")
    try:
        body = RelayResultPayload.model_validate(payload)
    except ValidationError as exc:
        raise InvalidRelayDataError("Invalid OAuth result data.") from exc
    await use_case.execute(
        poll_id=poll_id,
        result=RelayResult(
            success=body.success,
            session_id=body.session_id,
            user=body.user,
            message=body.message,
            error=body.error,
        ),
    )
    return StoreRelayResponse(message="OAuth result stored successfully")
