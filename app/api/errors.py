from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from app.domain.exceptions import DomainError, ErrorCode


logger = logging.getLogger(__name__)

STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.MISSING_PARAMETERS: 400,
    ErrorCode.INVALID_STATE: 400,
    ErrorCode.INVALID_POLL_ID: 400,
    ErrorCode.INVALID_DATA: 400,
    ErrorCode.INVALID_TOKEN: 401,
    ErrorCode.AUTHENTICATION_FAILED: 502,
    ErrorCode.ACCOUNT_EXISTS: 409,
    ErrorCode.USERNAME_TAKEN: 409,
    ErrorCode.NETWORK_ERROR: 503,
    ErrorCode.CONFIGURATION_ERROR: 500,
    ErrorCode.USER_NOT_FOUND: 500,
    ErrorCode.INTERNAL_ERROR: 500,
}


def status_for(code: ErrorCode) -> int:
    return STATUS_BY_CODE.get(code, 500)


def error_response(code: ErrorCode, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_for(code),
        content={"success": False, "error": code.value, "message": message},
    )


async def domain_error_handler(_request: Request, exc: DomainError) -> JSONResponse:
    return error_response(exc.code, str(exc))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("api: unhandled_error path=%s", request.url.path, exc_info=exc)
    return error_response(ErrorCode.INTERNAL_ERROR, "Internal server error.")
