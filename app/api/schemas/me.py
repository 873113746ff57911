from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.api.schemas.auth import AuthUserResponse


class VerifySessionResponse(BaseModel):
    valid: bool
    user: AuthUserResponse | None = None


class CharacterSummaryResponse(BaseModel):
    id: str
    created_at: datetime
    last_edited_at: datetime | None = None


class MeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user: AuthUserResponse
    character: CharacterSummaryResponse | None = None
    has_character: bool = Field(..., alias="hasCharacter")


class LogoutResponse(BaseModel):
    success: bool
    message: str
