from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class RelayResult:
    """Outcome of a login that ran in a detached browser window."""

    success: bool
    session_id: str | None = None
    user: dict[str, Any] | None = None
    message: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class RelayRecord:
    poll_id: str
    result: RelayResult
    created_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class PollIdOutput:
    poll_id: str
    expires_at: datetime


@dataclass(frozen=True)
class PollOutput:
    status: str
    result: RelayResult | None = field(default=None)

    @property
    def completed(self) -> bool:
        return self.result is not None
