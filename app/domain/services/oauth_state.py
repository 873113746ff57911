from __future__ import annotations

from dataclasses import dataclass

from app.domain.services.tokens import generate_token, is_token


POLL_ID_SEPARATOR = "_pollid_"


@dataclass(frozen=True)
class StatePayload:
    """The value sent to a provider as ``state``.

    ``nonce`` is the anti-forgery part. ``poll_id`` is set when the login runs
    in a detached window and its result has to be relayed back to the opener.
    Both parts are lowercase hex, so the separator can never appear inside them.
    """

    nonce: str
    poll_id: str | None = None

    @classmethod
    def new(cls, poll_id: str | None = None) -> StatePayload:
        return cls(nonce=generate_token(), poll_id=poll_id or None)


def encode_state(payload: StatePayload) -> str:
    if payload.poll_id is None:
        return payload.nonce
    return f"{payload.nonce}{POLL_ID_SEPARATOR}{payload.poll_id}"


def decode_state(value: str | None) -> StatePayload | None:
    """Parse a state string; returns None when it was not produced by encode_state."""
    if not value:
        return None
    nonce, separator, poll_id = value.partition(POLL_ID_SEPARATOR)
    if not is_token(nonce):
        return None
    if not separator:
        return StatePayload(nonce=nonce)
    if not is_token(poll_id):
        return None
    return StatePayload(nonce=nonce, poll_id=poll_id)
