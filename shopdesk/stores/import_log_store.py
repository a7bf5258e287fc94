"""Store for WooCommerce import and sync progress logs."""

from __future__ import annotations

from typing import Type, Union

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from shopdesk.core.error_codes import DatabaseErrorCode
from shopdesk.core.exceptions import DatabaseException
from shopdesk.core.logger import get_logger
from shopdesk.models import WooCommerceImportLog, WooCommerceSyncLog
from shopdesk.models.base import utc_now
from shopdesk.models.imports import STATUS_FAILED, STATUS_IN_PROGRESS
from shopdesk.stores.database import database_session

logger = get_logger(__name__)

LogModel = Type[Union[WooCommerceImportLog, WooCommerceSyncLog]]


class ImportLogStore:
    """Status transitions of import and sync logs."""

    def mark_failed_if_running(
        self, model: LogModel, log_id: str, error_message: str
    ) -> int:
        """
        Mark a running log as failed with ``completed_at = now``.

        Only rows still ``in_progress`` are touched; completed, failed or
        unknown ids affect zero rows.

        Returns:
            Number of rows updated (0 or 1)
        """
        stmt = (
            update(model)
            .where(model.id == log_id)
            .where(model.status == STATUS_IN_PROGRESS)
            .values(
                status=STATUS_FAILED,
                error_message=error_message,
                completed_at=utc_now(),
                updated_at=utc_now(),
            )
        )
        try:
            with database_session() as db:
                result = db.execute(stmt)
                db.commit()
                updated = result.rowcount or 0
        except SQLAlchemyError as exc:
            logger.error(
                "Failed to stop %s %s: %s", model.__tablename__, log_id, exc
            )
            raise DatabaseException(
                f"Failed to update {model.__tablename__}: {log_id}",
                DatabaseErrorCode.QUERY_FAILED,
            ) from exc

        logger.info(
            "Stop request for %s %s updated %d row(s)",
            model.__tablename__,
            log_id,
            updated,
        )
        return updated


__all__ = ["ImportLogStore"]
