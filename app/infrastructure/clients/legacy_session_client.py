from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from app.application.dto.auth import AuthorizationRequest, ProviderIdentity
from app.application.ports.identity_provider_port import IdentityProviderClientPort
from app.domain.exceptions import AuthError, InvalidOrExpiredTokenError

from .provider_http import ensure_success, json_object, missing_variables, send


logger = logging.getLogger(__name__)

PLATFORM = "legacy-session"

DEFAULT_GATEWAY_URL = "https://newgrounds.io/gateway_v3.php"


@dataclass(frozen=True)
class LegacySessionSettings:
    app_id: str
    gateway_url: str = DEFAULT_GATEWAY_URL


class LegacySessionClient(IdentityProviderClientPort):
    """Gateway that authenticates with its own session ids instead of OAuth codes.

    ``App.startSession`` opens a gateway session and returns its passport page.
    The passport page cannot carry our state, so the authorization response
    hands the caller both the gateway session id and the state; after the user
    signs in, the caller posts that session id to the callback and
    ``App.checkSession`` tells us who it belongs to.
    """

    platform = PLATFORM

    def __init__(self, settings: LegacySessionSettings, *, http_client: httpx.AsyncClient):
        self._settings = settings
        self._http = http_client

    def missing_configuration(self) -> list[str]:
        return missing_variables({"LEGACY_SESSION_CLIENT_ID": self._settings.app_id})

    async def build_authorization_url(self, *, state: str) -> AuthorizationRequest:
        payload = await self._execute("App.startSession", session_id=None)
        session = _session_from(payload)
        passport_url = session.get("passport_url") if session else None
        gateway_session_id = session.get("id") if session else None
        if not isinstance(passport_url, str) or not passport_url or not gateway_session_id:
            raise AuthError("Legacy session gateway did not start a session.", platform=PLATFORM)
        return AuthorizationRequest(url=passport_url, session_id=str(gateway_session_id))

    async def fetch_identity(self, *, credential: str, code_verifier: str | None = None) -> ProviderIdentity:
        payload = await self._execute("App.checkSession", session_id=credential)
        identity = _identity_from(payload, session_id=credential)
        if identity is None:
            raise InvalidOrExpiredTokenError(platform=PLATFORM, message="Invalid or expired legacy session.")
        return identity

    async def revalidate(self, *, platform_session_id: str) -> ProviderIdentity | None:
        try:
            payload = await self._execute("App.checkSession", session_id=platform_session_id)
        except InvalidOrExpiredTokenError:
            logger.info("legacy_session_client: session_rejected")
            return None
        identity = _identity_from(payload, session_id=platform_session_id)
        if identity is None:
            logger.info("legacy_session_client: session_no_longer_valid")
        return identity

    async def _execute(self, component: str, *, session_id: str | None) -> dict[str, Any]:
        request: dict[str, Any] = {
            "app_id": self._settings.app_id,
            "execute": {"component": component, "parameters": {}},
        }
        if session_id is not None:
            request["session_id"] = session_id

        logger.info(
            "legacy_session_client: gateway_call component=%s session_id_length=%s",
            component,
            len(session_id) if session_id else 0,
        )
        response = await send(
            self._http,
            "POST",
            self._settings.gateway_url,
            platform=PLATFORM,
            json=request,
        )
        ensure_success(response, platform=PLATFORM, action=component)
        return json_object(response, platform=PLATFORM)


def _session_from(payload: dict[str, Any]) -> dict[str, Any] | None:
    if not payload.get("success"):
        error = payload.get("error") if isinstance(payload.get("error"), dict) else {}
        logger.info("legacy_session_client: gateway_rejected code=%s", error.get("code"))
        return None
    result = payload.get("result")
    data = result.get("data") if isinstance(result, dict) else None
    session = data.get("session") if isinstance(data, dict) else None
    return session if isinstance(session, dict) else None


def _identity_from(payload: dict[str, Any], *, session_id: str) -> ProviderIdentity | None:
    session = _session_from(payload)
    if session is None or session.get("expired"):
        return None
    user = session.get("user")
    if not isinstance(user, dict) or user.get("id") is None or not user.get("name"):
        return None
    return ProviderIdentity(
        external_id=str(user["id"]),
        username=str(user["name"]),
        platform_session_id=session_id,
    )
