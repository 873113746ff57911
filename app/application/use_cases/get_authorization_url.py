from __future__ import annotations

from collections.abc import Mapping

from app.application.dto.auth import AuthorizationUrlOutput, GetAuthorizationUrlInput
from app.application.services.provider_adapters import ProviderAdapter
from app.domain.entities.user import Platform
from app.domain.exceptions import InvalidPollIdError
from app.domain.services.tokens import is_token

from .auth_common import select_adapter


class GetAuthorizationUrlUseCase:
    def __init__(self, *, adapters: Mapping[Platform, ProviderAdapter]):
        self._adapters = adapters

    async def execute(self, command: GetAuthorizationUrlInput) -> AuthorizationUrlOutput:
        poll_id = command.poll_id or None
        if poll_id is not None and not is_token(poll_id):
            raise InvalidPollIdError("Invalid polling ID.")
        adapter = select_adapter(self._adapters, command.platform)
        return await adapter.generate_auth_url(poll_id)
