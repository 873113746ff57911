from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.application.dto.auth import AuthUserOutput


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AuthorizationUrlResponse(CamelModel):
    auth_url: str = Field(..., alias="authUrl")
    state: str
    expires_at: datetime = Field(..., alias="expiresAt")
    session_id: str | None = Field(default=None, alias="sessionId")


class CallbackRequest(BaseModel):
    code: str | None = Field(default=None, max_length=4096)
    access_token: str | None = Field(default=None, max_length=4096)
    session_id: str | None = Field(default=None, max_length=4096)
    state: str | None = Field(default=None, max_length=512)
    code_verifier: str | None = Field(default=None, max_length=256)


class AuthUserResponse(CamelModel):
    id: str
    username: str
    platform: str
    is_admin: bool = Field(..., alias="isAdmin")


class CallbackResponse(CamelModel):
    success: bool = True
    session_id: str = Field(..., alias="sessionId")
    user: AuthUserResponse
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    message: str


def auth_user_response(user: AuthUserOutput) -> AuthUserResponse:
    return AuthUserResponse(
        id=user.id,
        username=user.username,
        platform=user.platform,
        is_admin=user.is_admin,
    )
