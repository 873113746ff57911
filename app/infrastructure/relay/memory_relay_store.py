from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import timedelta

from app.application.dto.relay import RelayRecord, RelayResult
from app.domain.services.clock import Clock, utcnow
from app.domain.services.tokens import generate_token


logger = logging.getLogger(__name__)

DEFAULT_RELAY_TTL = timedelta(minutes=10)
DEFAULT_SWEEP_INTERVAL_SECONDS = 300.0


class MemoryRelayStore:
    """Process-local poll id -> login result cache.

    Records are read once and expire after ``ttl``. A background sweep, started
    with ``start()``, drops records nobody polled. Losing the cache on restart
    only costs the login that was in flight.
    """

    def __init__(
        self,
        *,
        ttl: timedelta = DEFAULT_RELAY_TTL,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Clock = utcnow,
    ):
        self._ttl = ttl
        self._sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock
        self._records: dict[str, RelayRecord] = {}
        self._lock = asyncio.Lock()
        self._sweep_task: asyncio.Task[None] | None = None

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def generate_poll_id(self) -> str:
        return generate_token()

    async def store(self, poll_id: str, result: RelayResult) -> None:
        now = self._clock()
        record = RelayRecord(poll_id=poll_id, result=result, created_at=now, expires_at=now + self._ttl)
        async with self._lock:
            self._records[poll_id] = record
        logger.info(
            "memory_relay_store: result_stored success=%s has_session=%s",
            result.success,
            result.session_id is not None,
        )

    async def get(self, poll_id: str) -> RelayResult | None:
        async with self._lock:
            record = self._records.pop(poll_id, None)
        if record is None:
            return None
        if record.expires_at <= self._clock():
            return None
        return record.result

    async def sweep(self) -> int:
        now = self._clock()
        async with self._lock:
            expired = [poll_id for poll_id, record in self._records.items() if record.expires_at <= now]
            for poll_id in expired:
                del self._records[poll_id]
            remaining = len(self._records)
        if expired:
            logger.info("memory_relay_store: swept count=%s remaining=%s", len(expired), remaining)
        return len(expired)

    def __len__(self) -> int:
        return len(self._records)

    def start(self) -> None:
        if self._sweep_task is not None and not self._sweep_task.done():
            logger.warning("memory_relay_store: sweeper_already_running")
            return
        self._sweep_task = asyncio.create_task(self._sweep_forever())

    async def stop(self) -> None:
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval_seconds)
            await self.sweep()
