from __future__ import annotations

from datetime import timedelta
from typing import Protocol

from app.application.dto.relay import RelayResult


class RelayPort(Protocol):
    @property
    def ttl(self) -> timedelta:
        ...

    def generate_poll_id(self) -> str:
        ...

    async def store(self, poll_id: str, result: RelayResult) -> None:
        ...

    async def get(self, poll_id: str) -> RelayResult | None:
        ...

    async def sweep(self) -> int:
        ...
