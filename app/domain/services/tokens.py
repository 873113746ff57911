from __future__ import annotations

import re
import secrets


TOKEN_BYTES = 32

_HEX_TOKEN_RE = re.compile(r"^[0-9a-f]{64}$")


def generate_token() -> str:
    """Return a 64 character hex token built from 32 random bytes."""
    return secrets.token_hex(TOKEN_BYTES)


def is_token(value: str | None) -> bool:
    return bool(value) and _HEX_TOKEN_RE.match(value) is not None
