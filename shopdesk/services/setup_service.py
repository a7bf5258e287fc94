"""First-time setup detection."""

from __future__ import annotations

from typing import Optional

from shopdesk.core.config import settings
from shopdesk.core.logger import get_logger
from shopdesk.models.user_role import ROLE_ADMIN
from shopdesk.stores.query_cache import QueryCache, get_query_cache
from shopdesk.stores.user_role_store import UserRoleStore

logger = get_logger(__name__)

FIRST_TIME_SETUP_KEY = ("firstTimeSetup",)
FIRST_TIME_SETUP_TTL = 30


class SetupService:
    """Decide whether the instance still needs its first admin account."""

    def __init__(
        self,
        cache: QueryCache,
        roles: Optional[UserRoleStore] = None,
        bypass: Optional[bool] = None,
    ) -> None:
        self.cache = cache
        self.roles = roles or UserRoleStore()
        self.bypass = settings.setup__bypass_first_time_check if bypass is None else bypass

    async def is_first_time(self) -> bool:
        """
        True while no admin exists.

        Raises:
            DatabaseException: If the role lookup fails
        """
        if self.bypass:
            logger.warning("First-time setup check bypassed by configuration")
            return False

        async def fetch() -> bool:
            return not self.roles.role_exists(ROLE_ADMIN)

        return bool(
            await self.cache.get_or_fetch(
                FIRST_TIME_SETUP_KEY, fetch, ttl=FIRST_TIME_SETUP_TTL
            )
        )


_default_service: Optional[SetupService] = None


def get_setup_service() -> SetupService:
    global _default_service
    if _default_service is None:
        _default_service = SetupService(get_query_cache())
    return _default_service


__all__ = ["FIRST_TIME_SETUP_KEY", "SetupService", "get_setup_service"]
