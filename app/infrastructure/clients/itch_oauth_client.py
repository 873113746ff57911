from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx

from app.application.dto.auth import AuthorizationRequest, ProviderIdentity
from app.application.ports.identity_provider_port import IdentityProviderClientPort
from app.domain.exceptions import AuthError, InvalidOrExpiredTokenError

from .provider_http import ensure_success, is_revoked, json_object, missing_variables, send


logger = logging.getLogger(__name__)

PLATFORM = "itch"


@dataclass(frozen=True)
class ItchOAuthSettings:
    client_id: str
    redirect_uri: str
    authorize_url: str = "https://itch.io/user/oauth"
    profile_url: str = "https://api.itch.io/profile"
    scope: str = "profile:me"


class ItchOAuthClient(IdentityProviderClientPort):
    """Itch.io implicit grant.

    The access token comes back in the URL fragment, so only the browser sees
    it; the callback page posts it to the server together with the state.
    """

    platform = PLATFORM

    def __init__(self, settings: ItchOAuthSettings, *, http_client: httpx.AsyncClient):
        self._settings = settings
        self._http = http_client

    def missing_configuration(self) -> list[str]:
        return missing_variables(
            {
                "ITCH_IO_CLIENT_ID": self._settings.client_id,
                "ITCH_IO_REDIRECT_URI": self._settings.redirect_uri,
            }
        )

    async def build_authorization_url(self, *, state: str) -> AuthorizationRequest:
        params = {
            "client_id": self._settings.client_id,
            "scope": self._settings.scope,
            "redirect_uri": self._settings.redirect_uri,
            "response_type": "token",
            "state": state,
        }
        return AuthorizationRequest(url=f"{self._settings.authorize_url}?{urlencode(params)}")

    async def fetch_identity(self, *, credential: str, code_verifier: str | None = None) -> ProviderIdentity:
        response = await self._profile_request(credential)
        ensure_success(response, platform=PLATFORM, action="profile fetch")
        return _identity_from_profile(json_object(response, platform=PLATFORM), access_token=credential)

    async def revalidate(self, *, platform_session_id: str) -> ProviderIdentity | None:
        response = await self._profile_request(platform_session_id)
        if is_revoked(response):
            logger.info("itch_oauth_client: token_rejected status=%s", response.status_code)
            return None
        ensure_success(response, platform=PLATFORM, action="profile check")
        try:
            return _identity_from_profile(
                json_object(response, platform=PLATFORM),
                access_token=platform_session_id,
            )
        except InvalidOrExpiredTokenError:
            logger.info("itch_oauth_client: token_rejected status=%s", response.status_code)
            return None

    async def _profile_request(self, access_token: str) -> httpx.Response:
        return await send(
            self._http,
            "GET",
            self._settings.profile_url,
            platform=PLATFORM,
            headers={"Authorization": f"Bearer {access_token}"},
        )


def _identity_from_profile(payload: dict, *, access_token: str) -> ProviderIdentity:
    if payload.get("errors"):
        raise InvalidOrExpiredTokenError(platform=PLATFORM)
    user = payload.get("user")
    if not isinstance(user, dict) or user.get("id") is None or not user.get("username"):
        raise AuthError("Failed to get user info from Itch.io.", platform=PLATFORM)
    return ProviderIdentity(
        external_id=str(user["id"]),
        username=str(user["username"]),
        platform_session_id=access_token,
    )
