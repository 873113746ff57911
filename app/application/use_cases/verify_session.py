from __future__ import annotations

from collections.abc import Mapping

from app.application.dto.auth import AuthUserOutput, VerifySessionInput
from app.application.services.provider_adapters import ProviderAdapter
from app.application.services.session_manager import SessionManager
from app.domain.entities.user import Platform

from .auth_common import build_auth_user_output, build_session_user_output, select_adapter


class VerifySessionUseCase:
    def __init__(
        self,
        *,
        sessions: SessionManager,
        adapters: Mapping[Platform, ProviderAdapter],
    ):
        self._sessions = sessions
        self._adapters = adapters

    async def execute(self, command: VerifySessionInput) -> AuthUserOutput | None:
        session = await self._sessions.validate_session(command.session_id)
        if session is None:
            return None
        if not command.revalidate:
            return build_session_user_output(session)

        adapter = select_adapter(self._adapters, session.platform)
        user = await adapter.validate_session(command.session_id)
        if user is None:
            return None
        return build_auth_user_output(user)
