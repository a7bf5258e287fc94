"""Cancellation of running WooCommerce imports and syncs."""

from __future__ import annotations

from typing import Any, Dict, Optional

from shopdesk.core.error_codes import ValidationErrorCode
from shopdesk.core.exceptions import ApplicationException, ValidationException
from shopdesk.core.logger import get_logger
from shopdesk.models import WooCommerceImportLog, WooCommerceSyncLog
from shopdesk.services.notice_service import NoticeService, get_notice_service
from shopdesk.stores.import_log_store import ImportLogStore
from shopdesk.stores.query_cache import QueryCache, get_query_cache

logger = get_logger(__name__)


class ImportControlService:
    """
    Stop requests for import and sync runs.

    The import/sync workers poll their log row and bail out once it is no
    longer ``in_progress``; stopping only flips that row.
    """

    def __init__(
        self,
        cache: QueryCache,
        notices: NoticeService,
        store: Optional[ImportLogStore] = None,
    ) -> None:
        self.cache = cache
        self.notices = notices
        self.store = store or ImportLogStore()

    async def stop_import(self, import_log_id: Optional[str]) -> Dict[str, Any]:
        if not import_log_id:
            raise ValidationException(
                "Import log ID is required", ValidationErrorCode.MISSING_FIELD
            )
        try:
            updated = self.store.mark_failed_if_running(
                WooCommerceImportLog, import_log_id, "Import stopped by user"
            )
        except ApplicationException:
            await self.notices.error("Failed to stop import")
            raise

        await self.cache.invalidate(("woocommerce-connections",), ("import-logs",))
        await self.notices.success("Import stopped successfully")
        return {
            "success": True,
            "message": "Import stopped successfully",
            "importLogId": import_log_id,
            "stopped": updated > 0,
        }

    async def stop_sync(self, sync_log_id: Optional[str]) -> Dict[str, Any]:
        if not sync_log_id:
            raise ValidationException(
                "Sync log ID is required", ValidationErrorCode.MISSING_FIELD
            )
        try:
            updated = self.store.mark_failed_if_running(
                WooCommerceSyncLog, sync_log_id, "Sync stopped by user"
            )
        except ApplicationException:
            await self.notices.error("Failed to stop sync")
            raise

        await self.cache.invalidate(("woocommerce-connections",), ("sync-logs",))
        await self.notices.success("Sync stopped successfully")
        return {
            "success": True,
            "message": "Sync stopped successfully",
            "syncLogId": sync_log_id,
            "stopped": updated > 0,
        }


_default_service: Optional[ImportControlService] = None


def get_import_control_service() -> ImportControlService:
    global _default_service
    if _default_service is None:
        _default_service = ImportControlService(get_query_cache(), get_notice_service())
    return _default_service


__all__ = ["ImportControlService", "get_import_control_service"]
