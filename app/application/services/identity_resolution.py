from __future__ import annotations

import logging
from dataclasses import replace
from uuid import uuid4

from app.application.ports.credential_store_port import CredentialStorePort, UniqueViolationError
from app.domain.entities.user import Platform, User
from app.domain.exceptions import AccountExistsError, UsernameTakenError
from app.domain.services.clock import Clock, utcnow


logger = logging.getLogger(__name__)

USERNAME_MAX_LENGTH = 100


def normalize_username(username: str, *, fallback: str) -> str:
    cleaned = username.strip()[:USERNAME_MAX_LENGTH]
    return cleaned or fallback[:USERNAME_MAX_LENGTH]


class IdentityResolver:
    """Maps a verified provider identity to a local user, creating it on first sight.

    The local username is fixed at creation; later logins only refresh
    ``last_login`` even if the provider reports a different name or email.
    """

    def __init__(self, *, store: CredentialStorePort, clock: Clock = utcnow):
        self._store = store
        self._clock = clock

    async def resolve(
        self,
        platform: Platform,
        external_id: str,
        username: str,
        email: str | None = None,
    ) -> User:
        user = await self._store.find_user_by_platform_id(platform=platform, platform_user_id=external_id)
        if user is not None:
            return await self._touch(user)

        try:
            created = await self._store.create_user(
                user_id=str(uuid4()),
                platform=platform,
                platform_user_id=external_id,
                username=normalize_username(username, fallback=f"{platform}-{external_id}"),
                email=email,
                created_at=self._clock(),
            )
        except UniqueViolationError as exc:
            return await self._recover_from_collision(exc, platform=platform, external_id=external_id)

        logger.info(
            "identity_resolution: user_created user_id=%s platform=%s",
            created.id,
            platform,
        )
        return created

    async def _recover_from_collision(
        self,
        exc: UniqueViolationError,
        *,
        platform: Platform,
        external_id: str,
    ) -> User:
        # The store may report either index first, so look for a concurrent winner before classifying.
        existing = await self._store.find_user_by_platform_id(platform=platform, platform_user_id=external_id)
        if existing is not None:
            logger.info(
                "identity_resolution: concurrent_create_recovered user_id=%s platform=%s field=%s",
                existing.id,
                platform,
                exc.field,
            )
            return await self._touch(existing)

        if exc.field == "username":
            logger.info("identity_resolution: username_taken platform=%s", platform)
            raise UsernameTakenError(
                "This username is already taken on this platform."
            ) from exc

        logger.info("identity_resolution: account_exists platform=%s field=%s", platform, exc.field)
        raise AccountExistsError(
            "An account with this profile already exists for this platform."
        ) from exc

    async def _touch(self, user: User) -> User:
        now = self._clock()
        await self._store.touch_last_login(user_id=user.id, at=now)
        return replace(user, last_login=now)
