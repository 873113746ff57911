from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass

from app.application.services.oauth_state_registry import OAuthStateRegistry
from app.application.services.session_manager import SessionManager


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CleanupReport:
    deleted_sessions: int
    deleted_states: int


class CleanupScheduler:
    """Deletes expired sessions and OAuth states on a fixed interval.

    Reads already ignore expired rows; this only keeps the tables small.
    """

    def __init__(
        self,
        *,
        sessions: SessionManager,
        registry: OAuthStateRegistry,
        interval_seconds: float,
    ):
        self._sessions = sessions
        self._registry = registry
        self._interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> CleanupReport:
        deleted_sessions = await self._sessions.sweep_expired()
        deleted_states = await self._registry.sweep_expired()
        logger.info(
            "cleanup_scheduler: cleanup_completed deleted_sessions=%s deleted_states=%s",
            deleted_sessions,
            deleted_states,
        )
        return CleanupReport(deleted_sessions=deleted_sessions, deleted_states=deleted_states)

    def start(self) -> None:
        if self.running:
            logger.warning("cleanup_scheduler: already_running")
            return
        logger.info("cleanup_scheduler: starting interval_seconds=%s", self._interval_seconds)
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("cleanup_scheduler: stopped")

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception:
                logger.exception("cleanup_scheduler: cleanup_failed")
            await asyncio.sleep(self._interval_seconds)
