from __future__ import annotations

from typing import Protocol

from app.application.dto.me import CharacterSummary


class CharacterLookupPort(Protocol):
    async def find_active_character(self, *, user_id: str) -> CharacterSummary | None:
        ...
