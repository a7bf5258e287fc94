"""Service for reading and upserting settings of every category."""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from shopdesk.core.config import settings
from shopdesk.core.exceptions import ApplicationException
from shopdesk.core.logger import get_logger
from shopdesk.services.notice_service import NoticeService, get_notice_service
from shopdesk.services.settings_registry import SettingsRecord, get_category
from shopdesk.stores.query_cache import QueryCache, get_query_cache
from shopdesk.stores.settings_store import SettingsStore

logger = get_logger(__name__)


class SettingsService:
    """
    Settings accessor and upsert executor shared by all categories.

    Reads go through the query cache; a category that was never configured
    yields its default record (empty id, no timestamps) rather than an error.
    A successful write invalidates the category's cached queries and emits a
    success notice; a failed write emits an error notice, leaves the cache
    untouched and re-raises.
    """

    def __init__(
        self,
        cache: QueryCache,
        notices: NoticeService,
        store: Optional[SettingsStore] = None,
        atomic_upsert: Optional[bool] = None,
    ) -> None:
        self.cache = cache
        self.notices = notices
        self.store = store or SettingsStore()
        self.atomic_upsert = (
            settings.settings__atomic_upsert if atomic_upsert is None else atomic_upsert
        )

    async def get(self, category_name: str, scope: Optional[str] = None) -> SettingsRecord:
        """Return the current record of a category, or its default record."""
        category = get_category(category_name)
        resolved = category.resolve_scope(scope)

        async def fetch() -> dict:
            row = self.store.fetch_first(category, resolved)
            record = (
                category.to_record(row)
                if row is not None
                else category.default_record(resolved)
            )
            return record.model_dump(mode="json")

        data = await self.cache.get_or_fetch(category.cache_key(resolved), fetch)
        return SettingsRecord.model_validate(data)

    async def upsert(
        self,
        category_name: str,
        partial: Mapping[str, Any],
        scope: Optional[str] = None,
    ) -> SettingsRecord:
        """
        Apply ``partial`` to a category's row, inserting it on first write.

        Raises:
            ValidationException: Unknown category, scope or field
            DatabaseException: The write failed (SETTINGS_UPSERT_FAILED)
        """
        category = get_category(category_name)
        resolved = category.resolve_scope(scope)
        values = category.validate_partial(partial)

        try:
            row = self.store.upsert(
                category, resolved, values, atomic=self.atomic_upsert
            )
        except ApplicationException:
            await self.notices.error(
                category.notice_text(category.failure_message, resolved)
            )
            raise

        await self.cache.invalidate(*category.invalidation_keys(resolved))
        await self.notices.success(
            category.notice_text(category.success_message, resolved)
        )
        return category.to_record(row)

    async def list_custom(self) -> List[SettingsRecord]:
        """Return every stored custom code setting ordered by setting type."""
        category = get_category("custom")

        async def fetch() -> list:
            return [
                category.to_record(row).model_dump(mode="json")
                for row in self.store.fetch_all(category)
            ]

        data = await self.cache.get_or_fetch((category.cache_root,), fetch)
        return [SettingsRecord.model_validate(item) for item in data]

    async def get_custom(self, setting_type: str) -> SettingsRecord:
        return await self.get("custom", setting_type)


_default_service: Optional[SettingsService] = None


def get_settings_service() -> SettingsService:
    global _default_service
    if _default_service is None:
        _default_service = SettingsService(get_query_cache(), get_notice_service())
    return _default_service


__all__ = ["SettingsService", "get_settings_service"]
