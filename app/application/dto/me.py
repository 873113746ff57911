from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from app.application.dto.auth import AuthUserOutput


@dataclass(frozen=True)
class CharacterSummary:
    id: str
    created_at: datetime
    last_edited_at: datetime | None


@dataclass(frozen=True)
class MeOutput:
    user: AuthUserOutput
    character: CharacterSummary | None

    @property
    def has_character(self) -> bool:
        return self.character is not None
