from __future__ import annotations

from fastapi import Header

from app.domain.exceptions import InvalidSessionError


def require_bearer_token(authorization: str | None = Header(default=None)) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise InvalidSessionError("Missing bearer token.")
    token = authorization.replace("Bearer ", "", 1).strip()
    if not token:
        raise InvalidSessionError("Missing bearer token.")
    return token
