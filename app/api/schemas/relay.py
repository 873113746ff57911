from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PollIdResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    poll_id: str = Field(..., alias="pollId")
    expires_at: datetime = Field(..., alias="expiresAt")


class RelayResultPayload(BaseModel):
    """Body posted by a detached callback page, and the polled result."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    session_id: str | None = Field(default=None, alias="sessionId")
    user: dict[str, Any] | None = None
    message: str | None = None
    error: str | None = None


class PollResponse(RelayResultPayload):
    status: str


class StoreRelayResponse(BaseModel):
    success: bool = True
    message: str
