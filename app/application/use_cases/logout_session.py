from __future__ import annotations

import logging

from app.application.services.session_manager import SessionManager


logger = logging.getLogger(__name__)


class LogoutSessionUseCase:
    def __init__(self, *, sessions: SessionManager):
        self._sessions = sessions

    async def execute(self, *, session_id: str) -> None:
        await self._sessions.delete_session(session_id)
        logger.info("logout_session: session_deleted")
