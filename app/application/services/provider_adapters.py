from __future__ import annotations

import logging
from abc import ABC
from collections.abc import Iterable, Mapping

from app.application.dto.auth import (
    AuthenticationResult,
    AuthorizationUrlOutput,
    ProviderIdentity,
    NewSession,
    StateValidation,
)
from app.application.ports.credential_store_port import CredentialStorePort
from app.application.ports.identity_provider_port import IdentityProviderClientPort
from app.application.services.identity_resolution import IdentityResolver
from app.application.services.oauth_state_registry import OAuthStateRegistry
from app.application.services.session_manager import SessionManager
from app.domain.entities.user import Platform, User
from app.domain.exceptions import (
    AuthError,
    ConfigurationError,
    InvalidOrExpiredStateError,
    InvalidOrExpiredTokenError,
    MissingParametersError,
)
from app.domain.services.clock import Clock, utcnow
from app.domain.services.oauth_state import StatePayload, encode_state


logger = logging.getLogger(__name__)


class ProviderAdapter(ABC):
    """One identity provider seen from the auth core.

    Subclasses only decide two things: whether the state is tracked by the
    server, and which provider token is kept on the session for later
    re-validation.
    """

    platform: Platform
    tracks_state: bool = True

    def __init__(
        self,
        *,
        client: IdentityProviderClientPort,
        registry: OAuthStateRegistry,
        resolver: IdentityResolver,
        sessions: SessionManager,
        store: CredentialStorePort,
        clock: Clock = utcnow,
    ):
        if client.platform != self.platform:
            raise ValueError(f"{type(self).__name__} needs a {self.platform} client, got {client.platform}.")
        self._client = client
        self._registry = registry
        self._resolver = resolver
        self._sessions = sessions
        self._store = store
        self._clock = clock

    def _ensure_configured(self) -> None:
        missing = self._client.missing_configuration()
        if missing:
            raise ConfigurationError(self.platform, missing)

    async def generate_auth_url(self, poll_id: str | None = None) -> AuthorizationUrlOutput:
        self._ensure_configured()
        if self.tracks_state:
            issued = await self._registry.issue(self.platform, poll_id=poll_id)
            state, expires_at = issued.state, issued.expires_at
        else:
            state = encode_state(StatePayload.new(poll_id))
            expires_at = self._clock() + self._registry.ttl

        request = await self._client.build_authorization_url(state=state)
        logger.info(
            "provider_adapter: auth_url_generated platform=%s relayed=%s",
            self.platform,
            poll_id is not None,
        )
        return AuthorizationUrlOutput(
            auth_url=request.url,
            state=state,
            expires_at=expires_at,
            session_id=request.session_id,
        )

    async def authenticate_with_credential(
        self,
        credential: str | None,
        state: str | None,
        code_verifier: str | None = None,
    ) -> AuthenticationResult:
        if not credential:
            raise MissingParametersError(f"Missing {self.platform} credential.")
        self._ensure_configured()

        # Must run before any provider call so a forged callback never spends the code.
        if self.tracks_state:
            await self._consume_state(state)

        identity = await self._client.fetch_identity(credential=credential, code_verifier=code_verifier)
        user = await self._resolver.resolve(
            self.platform,
            identity.external_id,
            identity.username,
            identity.email,
        )
        session_id = await self._sessions.create_session(
            NewSession(
                user_id=user.id,
                platform=self.platform,
                platform_user_id=identity.external_id,
                platform_session_id=self._platform_session_id(credential, identity),
                username=user.username,
                is_admin=user.is_admin,
            )
        )
        return AuthenticationResult(session_id=session_id, user=user)

    async def validate_session(self, session_id: str) -> User | None:
        session = await self._sessions.validate_session(session_id)
        if session is None or session.platform != self.platform:
            return None
        if not session.platform_session_id:
            logger.info(
                "provider_adapter: no_platform_session platform=%s user_id=%s",
                self.platform,
                session.user_id,
            )
            return None

        try:
            identity = await self._client.revalidate(platform_session_id=session.platform_session_id)
        except InvalidOrExpiredTokenError:
            identity = None
        except AuthError as exc:
            # Outages and unusable answers are not a revocation; keep the local session.
            logger.warning(
                "provider_adapter: revalidation_inconclusive platform=%s user_id=%s error=%s keeping_local_session=true",
                self.platform,
                session.user_id,
                exc.code.value,
            )
            return await self._store.get_user_by_id(user_id=session.user_id)

        if identity is None or identity.external_id != session.platform_user_id:
            logger.info(
                "provider_adapter: provider_rejected_session platform=%s user_id=%s",
                self.platform,
                session.user_id,
            )
            return None
        return await self._store.get_user_by_id(user_id=session.user_id)

    async def _consume_state(self, state: str | None) -> None:
        if not state:
            raise MissingParametersError("Missing state parameter.")
        outcome = await self._registry.validate_and_consume(state, self.platform)
        if outcome is not StateValidation.OK:
            raise InvalidOrExpiredStateError(platform=self.platform)

    def _platform_session_id(self, credential: str, identity: ProviderIdentity) -> str | None:
        return identity.platform_session_id


class GoogleProviderAdapter(ProviderAdapter):
    """Authorization-code flow; the refresh token, when granted, re-validates sessions."""

    platform = "google"


class ItchProviderAdapter(ProviderAdapter):
    """Implicit flow: the access token arrives in the URL fragment of a detached window."""

    platform = "itch"

    def _platform_session_id(self, credential: str, identity: ProviderIdentity) -> str | None:
        return credential


class LegacySessionProviderAdapter(ProviderAdapter):
    """Gateway session ids; the state only round-trips through the client."""

    platform = "legacy-session"
    tracks_state = False

    def _platform_session_id(self, credential: str, identity: ProviderIdentity) -> str | None:
        return credential


def index_adapters(adapters: Iterable[ProviderAdapter]) -> Mapping[Platform, ProviderAdapter]:
    indexed: dict[Platform, ProviderAdapter] = {}
    for adapter in adapters:
        if adapter.platform in indexed:
            raise ValueError(f"Duplicate adapter for {adapter.platform}.")
        indexed[adapter.platform] = adapter
    return indexed
