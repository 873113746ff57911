from __future__ import annotations

from typing import Protocol

from app.application.dto.auth import AuthorizationRequest, ProviderIdentity
from app.domain.entities.user import Platform


class IdentityProviderClientPort(Protocol):
    """Network side of a provider.

    Implementations raise ``InvalidOrExpiredTokenError`` when the provider
    rejects a credential, ``ProviderNetworkError`` on transport failures or a
    provider 5xx and ``AuthError`` on any other unusable response.
    ``revalidate`` returns ``None`` only for an explicit rejection; anything
    inconclusive is raised.
    """

    platform: Platform

    def missing_configuration(self) -> list[str]:
        ...

    async def build_authorization_url(self, *, state: str) -> AuthorizationRequest:
        ...

    async def fetch_identity(self, *, credential: str, code_verifier: str | None = None) -> ProviderIdentity:
        ...

    async def revalidate(self, *, platform_session_id: str) -> ProviderIdentity | None:
        ...
