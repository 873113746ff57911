from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta

import httpx

from app.application.ports.character_port import CharacterLookupPort
from app.application.ports.credential_store_port import CredentialStorePort
from app.application.services.identity_resolution import IdentityResolver
from app.application.services.oauth_state_registry import OAuthStateRegistry
from app.application.services.provider_adapters import (
    GoogleProviderAdapter,
    ItchProviderAdapter,
    LegacySessionProviderAdapter,
    ProviderAdapter,
    index_adapters,
)
from app.application.services.session_manager import SessionManager
from app.domain.entities.user import Platform
from app.domain.services.clock import Clock, utcnow
from app.infrastructure.clients.google_oauth_client import GoogleOAuthClient, GoogleOAuthSettings
from app.infrastructure.clients.itch_oauth_client import ItchOAuthClient, ItchOAuthSettings
from app.infrastructure.clients.legacy_session_client import (
    DEFAULT_GATEWAY_URL,
    LegacySessionClient,
    LegacySessionSettings,
)
from app.infrastructure.db.engine import get_engine
from app.infrastructure.db.repositories.accounts_repository import SqlAccountsRepository
from app.infrastructure.db.repositories.character_repository import SqlCharacterRepository
from app.infrastructure.memory.memory_credential_store import (
    MemoryCharacterRepository,
    MemoryCredentialStore,
)
from app.infrastructure.relay.memory_relay_store import MemoryRelayStore
from app.infrastructure.tasks.cleanup_scheduler import CleanupScheduler
from app.shared.config import Settings


logger = logging.getLogger(__name__)


@dataclass
class AuthServices:
    settings: Settings
    store: CredentialStorePort
    character_port: CharacterLookupPort
    http_client: httpx.AsyncClient
    relay: MemoryRelayStore
    registry: OAuthStateRegistry
    sessions: SessionManager
    adapters: Mapping[Platform, ProviderAdapter]
    scheduler: CleanupScheduler
    clock: Clock = utcnow
    owns_http_client: bool = field(default=True)

    def start(self) -> None:
        self.relay.start()
        self.scheduler.start()

    async def close(self) -> None:
        await self.scheduler.stop()
        await self.relay.stop()
        if self.owns_http_client:
            await self.http_client.aclose()


def _build_store(settings: Settings) -> tuple[CredentialStorePort, CharacterLookupPort]:
    if not settings.postgres_dsn:
        logger.warning("container: postgres_dsn_missing using_memory_store=true")
        return MemoryCredentialStore(), MemoryCharacterRepository()
    engine = get_engine(settings.postgres_dsn)
    return SqlAccountsRepository(engine), SqlCharacterRepository(engine)


def build_services(
    settings: Settings,
    *,
    store: CredentialStorePort | None = None,
    character_port: CharacterLookupPort | None = None,
    http_client: httpx.AsyncClient | None = None,
    clock: Clock = utcnow,
) -> AuthServices:
    if store is None:
        store, default_characters = _build_store(settings)
        character_port = character_port or default_characters
    elif character_port is None:
        character_port = MemoryCharacterRepository()

    owns_http_client = http_client is None
    if http_client is None:
        http_client = httpx.AsyncClient(timeout=settings.provider_timeout_seconds)

    registry = OAuthStateRegistry(
        store=store,
        ttl=timedelta(minutes=settings.oauth_state_ttl_minutes),
        clock=clock,
    )
    sessions = SessionManager(
        store=store,
        ttl=timedelta(days=settings.session_ttl_days),
        clock=clock,
    )
    resolver = IdentityResolver(store=store, clock=clock)
    shared = {
        "registry": registry,
        "resolver": resolver,
        "sessions": sessions,
        "store": store,
        "clock": clock,
    }
    adapters = index_adapters(
        [
            GoogleProviderAdapter(
                client=GoogleOAuthClient(
                    GoogleOAuthSettings(
                        client_id=settings.google_client_id,
                        client_secret=settings.google_client_secret,
                        redirect_uri=settings.google_redirect_uri,
                    ),
                    http_client=http_client,
                ),
                **shared,
            ),
            ItchProviderAdapter(
                client=ItchOAuthClient(
                    ItchOAuthSettings(
                        client_id=settings.itch_io_client_id,
                        redirect_uri=settings.itch_io_redirect_uri,
                    ),
                    http_client=http_client,
                ),
                **shared,
            ),
            LegacySessionProviderAdapter(
                client=LegacySessionClient(
                    LegacySessionSettings(
                        app_id=settings.legacy_session_client_id,
                        gateway_url=settings.legacy_session_gateway_url or DEFAULT_GATEWAY_URL,
                    ),
                    http_client=http_client,
                ),
                **shared,
            ),
        ]
    )

    relay = MemoryRelayStore(
        ttl=timedelta(minutes=settings.relay_ttl_minutes),
        sweep_interval_seconds=settings.relay_sweep_interval_seconds,
        clock=clock,
    )
    scheduler = CleanupScheduler(
        sessions=sessions,
        registry=registry,
        interval_seconds=settings.cleanup_interval_minutes * 60,
    )
    return AuthServices(
        settings=settings,
        store=store,
        character_port=character_port,
        http_client=http_client,
        relay=relay,
        registry=registry,
        sessions=sessions,
        adapters=adapters,
        scheduler=scheduler,
        clock=clock,
        owns_http_client=owns_http_client,
    )
