import pytest
from sqlalchemy.orm import Session

from shopdesk.core.error_codes import DatabaseErrorCode, ValidationErrorCode
from shopdesk.core.exceptions import DatabaseException, ValidationException
from shopdesk.models import WooCommerceImportLog, WooCommerceSyncLog
from shopdesk.models.imports import STATUS_COMPLETED, STATUS_FAILED
from shopdesk.services.import_control_service import ImportControlService


def _add(engine, row):
    with Session(engine, expire_on_commit=False) as db:
        db.add(row)
        db.commit()
    return row


def _reload(engine, model, row_id):
    with Session(engine) as db:
        return db.get(model, row_id)


class BrokenStore:
    def mark_failed_if_running(self, model, log_id, error_message):
        raise DatabaseException("db down", DatabaseErrorCode.QUERY_FAILED)


@pytest.mark.asyncio
async def test_stop_import_marks_running_log_failed(db_engine, cache, notices):
    log = _add(db_engine, WooCommerceImportLog(connection_id="c1"))
    service = ImportControlService(cache, notices)

    result = await service.stop_import(log.id)

    assert result == {
        "success": True,
        "message": "Import stopped successfully",
        "importLogId": log.id,
        "stopped": True,
    }
    stored = _reload(db_engine, WooCommerceImportLog, log.id)
    assert stored.status == STATUS_FAILED
    assert stored.error_message == "Import stopped by user"
    assert stored.completed_at is not None
    assert cache.invalidated == [("woocommerce-connections",), ("import-logs",)]
    assert notices.messages("success") == ["Import stopped successfully"]


@pytest.mark.asyncio
async def test_stop_import_leaves_finished_log_alone(db_engine, cache, notices):
    log = _add(db_engine, WooCommerceImportLog(status=STATUS_COMPLETED))
    service = ImportControlService(cache, notices)

    result = await service.stop_import(log.id)

    assert result["stopped"] is False
    stored = _reload(db_engine, WooCommerceImportLog, log.id)
    assert stored.status == STATUS_COMPLETED
    assert stored.error_message is None


@pytest.mark.asyncio
async def test_stop_sync_mirrors_stop_import(db_engine, cache, notices):
    log = _add(db_engine, WooCommerceSyncLog())
    service = ImportControlService(cache, notices)

    result = await service.stop_sync(log.id)

    assert result["syncLogId"] == log.id
    assert result["stopped"] is True
    assert _reload(db_engine, WooCommerceSyncLog, log.id).error_message == (
        "Sync stopped by user"
    )
    assert cache.invalidated == [("woocommerce-connections",), ("sync-logs",)]
    assert notices.messages("success") == ["Sync stopped successfully"]


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["stop_import", "stop_sync"])
async def test_missing_id_is_rejected(cache, notices, method):
    service = ImportControlService(cache, notices, store=BrokenStore())

    with pytest.raises(ValidationException) as exc_info:
        await getattr(service, method)("")

    assert exc_info.value.error_code == ValidationErrorCode.MISSING_FIELD
    assert notices.items == []


@pytest.mark.asyncio
async def test_store_failure_emits_error_notice(cache, notices):
    service = ImportControlService(cache, notices, store=BrokenStore())

    with pytest.raises(DatabaseException):
        await service.stop_sync("log-1")

    assert notices.messages("error") == ["Failed to stop sync"]
    assert cache.invalidated == []
