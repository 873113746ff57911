from __future__ import annotations

from app.application.dto.me import MeOutput
from app.application.ports.character_port import CharacterLookupPort
from app.domain.entities.user import AuthSession

from .auth_common import build_session_user_output


class GetMeUseCase:
    def __init__(self, *, character_port: CharacterLookupPort):
        self._character_port = character_port

    async def execute(self, *, session: AuthSession) -> MeOutput:
        character = await self._character_port.find_active_character(user_id=session.user_id)
        return MeOutput(user=build_session_user_output(session), character=character)
