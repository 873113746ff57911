from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


def _csv(name: str, default: str) -> tuple[str, ...]:
    value = _env(name, default) or ""
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    postgres_dsn: str
    log_level: str
    google_client_id: str
    google_client_secret: str
    google_redirect_uri: str
    itch_io_client_id: str
    itch_io_redirect_uri: str
    legacy_session_client_id: str
    legacy_session_gateway_url: str
    provider_timeout_seconds: float
    session_ttl_days: int
    oauth_state_ttl_minutes: int
    relay_ttl_minutes: int
    relay_sweep_interval_seconds: float
    cleanup_interval_minutes: int
    cors_allow_origins: tuple[str, ...]


def get_settings() -> Settings:
    return Settings(
        postgres_dsn=_env("POSTGRES_DSN", ""),
        log_level=_env("LOG_LEVEL", "INFO"),
        google_client_id=_env("GOOGLE_CLIENT_ID", ""),
        google_client_secret=_env("GOOGLE_CLIENT_SECRET", ""),
        google_redirect_uri=_env("GOOGLE_REDIRECT_URI", ""),
        itch_io_client_id=_env("ITCH_IO_CLIENT_ID", ""),
        itch_io_redirect_uri=_env("ITCH_IO_REDIRECT_URI", ""),
        legacy_session_client_id=_env("LEGACY_SESSION_CLIENT_ID", ""),
        legacy_session_gateway_url=_env("LEGACY_SESSION_GATEWAY_URL", ""),
        provider_timeout_seconds=float(_env("PROVIDER_TIMEOUT_SECONDS", "10")),
        session_ttl_days=int(_env("SESSION_TTL_DAYS", "7")),
        oauth_state_ttl_minutes=int(_env("OAUTH_STATE_TTL_MINUTES", "10")),
        relay_ttl_minutes=int(_env("RELAY_TTL_MINUTES", "10")),
        relay_sweep_interval_seconds=float(_env("RELAY_SWEEP_INTERVAL_SECONDS", "300")),
        cleanup_interval_minutes=int(_env("CLEANUP_INTERVAL_MINUTES", "60")),
        cors_allow_origins=_csv("CORS_ALLOW_ORIGINS", "*"),
    )
