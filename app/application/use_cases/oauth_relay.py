from __future__ import annotations

import logging

from app.application.dto.relay import PollIdOutput, PollOutput, RelayResult
from app.application.ports.relay_port import RelayPort
from app.domain.exceptions import InvalidPollIdError
from app.domain.services.clock import Clock, utcnow
from app.domain.services.tokens import is_token


logger = logging.getLogger(__name__)


def _require_poll_id(poll_id: str | None) -> str:
    if not is_token(poll_id):
        raise InvalidPollIdError("Invalid polling ID.")
    return poll_id


class CreatePollIdUseCase:
    def __init__(self, *, relay: RelayPort, clock: Clock = utcnow):
        self._relay = relay
        self._clock = clock

    def execute(self) -> PollIdOutput:
        return PollIdOutput(
            poll_id=self._relay.generate_poll_id(),
            expires_at=self._clock() + self._relay.ttl,
        )


class PollRelayResultUseCase:
    def __init__(self, *, relay: RelayPort):
        self._relay = relay

    async def execute(self, *, poll_id: str) -> PollOutput:
        result = await self._relay.get(_require_poll_id(poll_id))
        if result is None:
            return PollOutput(status="pending")
        logger.info("oauth_relay: result_retrieved success=%s", result.success)
        return PollOutput(status="completed", result=result)


class StoreRelayResultUseCase:
    def __init__(self, *, relay: RelayPort):
        self._relay = relay

    async def execute(self, *, poll_id: str, result: RelayResult) -> None:
        await self._relay.store(_require_poll_id(poll_id), result)
