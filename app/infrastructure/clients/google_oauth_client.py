from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx

from app.application.dto.auth import AuthorizationRequest, ProviderIdentity
from app.application.ports.identity_provider_port import IdentityProviderClientPort
from app.domain.exceptions import AuthError, InvalidOrExpiredTokenError

from .provider_http import ensure_success, json_object, missing_variables, send


logger = logging.getLogger(__name__)

PLATFORM = "google"


@dataclass(frozen=True)
class GoogleOAuthSettings:
    client_id: str
    client_secret: str
    redirect_uri: str
    authorize_url: str = "https://accounts.google.com/o/oauth2/v2/auth"
    token_url: str = "https://oauth2.googleapis.com/token"
    userinfo_url: str = "https://www.googleapis.com/oauth2/v2/userinfo"
    scope: str = "openid email profile"


class GoogleOAuthClient(IdentityProviderClientPort):
    platform = PLATFORM

    def __init__(self, settings: GoogleOAuthSettings, *, http_client: httpx.AsyncClient):
        self._settings = settings
        self._http = http_client

    def missing_configuration(self) -> list[str]:
        return missing_variables(
            {
                "GOOGLE_CLIENT_ID": self._settings.client_id,
                "GOOGLE_CLIENT_SECRET": self._settings.client_secret,
                "GOOGLE_REDIRECT_URI": self._settings.redirect_uri,
            }
        )

    async def build_authorization_url(self, *, state: str) -> AuthorizationRequest:
        params = {
            "client_id": self._settings.client_id,
            "redirect_uri": self._settings.redirect_uri,
            "response_type": "code",
            "scope": self._settings.scope,
            "access_type": "offline",
            "state": state,
        }
        return AuthorizationRequest(url=f"{self._settings.authorize_url}?{urlencode(params)}")

    async def fetch_identity(self, *, credential: str, code_verifier: str | None = None) -> ProviderIdentity:
        form = {
            "client_id": self._settings.client_id,
            "client_secret": self._settings.client_secret,
            "code": credential,
            "grant_type": "authorization_code",
            "redirect_uri": self._settings.redirect_uri,
        }
        if code_verifier:
            form["code_verifier"] = code_verifier

        tokens = await self._token_request(form, action="code exchange")
        access_token = tokens.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise AuthError("Google token response is missing access_token.", platform=PLATFORM)

        identity = await self._fetch_profile(access_token)
        refresh_token = tokens.get("refresh_token")
        return ProviderIdentity(
            external_id=identity.external_id,
            username=identity.username,
            email=identity.email,
            platform_session_id=refresh_token if isinstance(refresh_token, str) and refresh_token else None,
        )

    async def revalidate(self, *, platform_session_id: str) -> ProviderIdentity | None:
        form = {
            "client_id": self._settings.client_id,
            "client_secret": self._settings.client_secret,
            "refresh_token": platform_session_id,
            "grant_type": "refresh_token",
        }
        try:
            tokens = await self._token_request(form, action="token refresh")
            access_token = tokens.get("access_token")
            if not isinstance(access_token, str) or not access_token:
                raise AuthError("Google refresh response is missing access_token.", platform=PLATFORM)
            return await self._fetch_profile(access_token)
        except InvalidOrExpiredTokenError:
            logger.info("google_oauth_client: refresh_rejected")
            return None

    async def _token_request(self, form: dict[str, str], *, action: str) -> dict[str, Any]:
        response = await send(
            self._http,
            "POST",
            self._settings.token_url,
            platform=PLATFORM,
            data=form,
            headers={"Accept": "application/json"},
        )
        if response.status_code == 400 and _oauth_error(response) == "invalid_grant":
            raise InvalidOrExpiredTokenError(
                platform=PLATFORM,
                message="Invalid or expired Google authorization code. Please try signing in again.",
            )
        ensure_success(response, platform=PLATFORM, action=action)
        return json_object(response, platform=PLATFORM)

    async def _fetch_profile(self, access_token: str) -> ProviderIdentity:
        response = await send(
            self._http,
            "GET",
            self._settings.userinfo_url,
            platform=PLATFORM,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        ensure_success(response, platform=PLATFORM, action="profile fetch")
        data = json_object(response, platform=PLATFORM)

        subject = data.get("id") or data.get("sub")
        email = data.get("email") if isinstance(data.get("email"), str) else None
        if not subject:
            raise AuthError("Google profile is missing the account id.", platform=PLATFORM)

        username = email.split("@")[0] if email else str(data.get("name") or "")
        return ProviderIdentity(external_id=str(subject), username=username, email=email)


def _oauth_error(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict) and isinstance(payload.get("error"), str):
        return payload["error"]
    return None
