from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from app.application.dto.me import CharacterSummary
from app.application.ports.character_port import CharacterLookupPort
from app.infrastructure.db.mappers.accounts_mapper import map_row_to_character_summary


class SqlCharacterRepository(CharacterLookupPort):
    def __init__(self, engine: AsyncEngine):
        self._engine = engine

    async def find_active_character(self, *, user_id: str) -> CharacterSummary | None:
        sql = """
            SELECT id, created_at, last_edited_at
            FROM characters
            WHERE user_id = :user_id AND is_deleted = false
            LIMIT 1
        """
        async with self._engine.connect() as conn:
            result = await conn.execute(text(sql), {"user_id": user_id})
            row = result.mappings().first()
        if row is None:
            return None
        return map_row_to_character_summary(row)
