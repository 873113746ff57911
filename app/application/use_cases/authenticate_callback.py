from __future__ import annotations

import logging
from collections.abc import Mapping

from app.application.dto.auth import AuthFailure, AuthOutcome, AuthSuccess, CallbackInput
from app.application.ports.credential_store_port import CredentialStorePort
from app.application.ports.relay_port import RelayPort
from app.application.services.provider_adapters import ProviderAdapter
from app.domain.entities.user import Platform
from app.domain.exceptions import DomainError, ErrorCode, UserNotFoundError
from app.domain.services.oauth_state import decode_state

from .auth_common import (
    PLATFORM_LABELS,
    build_auth_user_output,
    outcome_to_relay_result,
    select_adapter,
)


logger = logging.getLogger(__name__)


class AuthenticateCallbackUseCase:
    """Completes a provider login and reports it as an explicit outcome.

    Every taxonomy error becomes an ``AuthFailure`` carrying its ``ErrorCode``.
    When the state carries a relay poll id the outcome is also handed to the
    relay, so the window that started the login can pick it up.
    """

    def __init__(
        self,
        *,
        adapters: Mapping[Platform, ProviderAdapter],
        store: CredentialStorePort,
        relay: RelayPort,
    ):
        self._adapters = adapters
        self._store = store
        self._relay = relay

    async def execute(self, command: CallbackInput) -> AuthOutcome:
        payload = decode_state(command.state)
        poll_id = payload.poll_id if payload is not None else None

        try:
            outcome = await self._authenticate(command)
        except Exception:
            if poll_id is not None:
                await self._relay.store(
                    poll_id,
                    outcome_to_relay_result(
                        AuthFailure(error=ErrorCode.INTERNAL_ERROR, message="Authentication failed.")
                    ),
                )
            raise

        if poll_id is not None:
            await self._relay.store(poll_id, outcome_to_relay_result(outcome))
        return outcome

    async def _authenticate(self, command: CallbackInput) -> AuthOutcome:
        label = PLATFORM_LABELS.get(command.platform, command.platform)
        try:
            adapter = select_adapter(self._adapters, command.platform)
            result = await adapter.authenticate_with_credential(
                command.credential,
                command.state,
                command.code_verifier,
            )
            user = await self._store.find_user_by_platform_id(
                platform=command.platform,
                platform_user_id=result.user.platform_user_id,
            )
            if user is None:
                await self._store.delete_session(session_id=result.session_id)
                raise UserNotFoundError("User account was not properly created during authentication.")
        except DomainError as exc:
            logger.info(
                "authenticate_callback: failed platform=%s error=%s",
                command.platform,
                exc.code.value,
            )
            return AuthFailure(error=exc.code, message=str(exc))

        logger.info(
            "authenticate_callback: succeeded platform=%s user_id=%s",
            command.platform,
            user.id,
        )
        return AuthSuccess(
            session_id=result.session_id,
            user=build_auth_user_output(user),
            message=f"{label} authentication successful",
        )
