from __future__ import annotations

import logging
from typing import Any

import httpx

from app.domain.exceptions import AuthError, InvalidOrExpiredTokenError, ProviderNetworkError


logger = logging.getLogger(__name__)

REJECTION_STATUSES = frozenset({401, 403})

# A stored provider token answered with one of these is revoked, not unreachable.
REVOKED_STATUSES = frozenset({400, 401, 403})


async def send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    platform: str,
    **kwargs: Any,
) -> httpx.Response:
    try:
        return await client.request(method, url, **kwargs)
    except httpx.TransportError as exc:
        logger.warning(
            "provider_http: transport_error platform=%s error=%s",
            platform,
            type(exc).__name__,
        )
        raise ProviderNetworkError(platform=platform) from exc


def json_object(response: httpx.Response, *, platform: str) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise AuthError(f"Malformed response from {platform}.", platform=platform) from exc
    if not isinstance(payload, dict):
        raise AuthError(f"Malformed response from {platform}.", platform=platform)
    return payload


def ensure_success(response: httpx.Response, *, platform: str, action: str) -> None:
    """Raise the taxonomy error for a non-2xx answer; the body is never echoed."""
    if response.is_success:
        return
    logger.info(
        "provider_http: non_success_status platform=%s action=%s status=%s",
        platform,
        action,
        response.status_code,
    )
    if response.status_code in REJECTION_STATUSES:
        raise InvalidOrExpiredTokenError(platform=platform)
    if response.is_server_error:
        raise ProviderNetworkError(platform=platform, message=f"{platform} is temporarily unavailable.")
    raise AuthError(f"{platform} {action} failed.", platform=platform)


def is_revoked(response: httpx.Response) -> bool:
    return response.status_code in REVOKED_STATUSES


def missing_variables(values: dict[str, str]) -> list[str]:
    return [name for name, value in values.items() if not value]
