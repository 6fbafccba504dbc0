"""Current-user lookup and privilege checks."""

from __future__ import annotations

import logging

from core.domain.errors import NotFound
from core.domain.models import QueryScope, User
from core.interfaces.auth import AuthProvider
from core.services.entity_cache import CacheContext, EntityCache

logger = logging.getLogger(__name__)

CURRENT_USER_SCOPE = "currentUser"

DEFAULT_CURRENT_USER_TTL_SECONDS = 60.0


class UserDirectory:
    """Resolves the signed-in caller to a `User` record.

    The lookup is cached with a short TTL because identity rarely changes
    mid-session; it is the only time-expiring entry in the cache.
    """

    def __init__(
        self,
        users: EntityCache[User],
        auth: AuthProvider,
        context: CacheContext,
        *,
        ttl_seconds: float = DEFAULT_CURRENT_USER_TTL_SECONDS,
    ) -> None:
        self._users = users
        self._auth = auth
        self._context = context
        self._ttl = ttl_seconds

    async def list_users(self) -> list[User]:
        return await self._users.fetch()

    async def current_user(self) -> User | None:
        scope = QueryScope.of(CURRENT_USER_SCOPE)

        async def _load() -> list[User]:
            uid = await self._auth.current_uid()
            if not uid:
                return []
            try:
                return [await self._users.get(uid)]
            except NotFound:
                logger.debug("No user document for uid %s", uid)
                return []

        found = await self._context.load(scope, _load, ttl=self._ttl)
        return found[0] if found else None

    async def is_admin(self) -> bool:
        user = await self.current_user()
        return bool(user and user.is_admin)

    def forget_current_user(self) -> None:
        """Drop the cached identity (sign-out, account switch)."""

        self._context.invalidate(CURRENT_USER_SCOPE)
