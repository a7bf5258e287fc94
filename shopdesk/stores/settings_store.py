"""Store for per-category settings rows."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shopdesk.core.error_codes import DatabaseErrorCode, SettingsErrorCode
from shopdesk.core.exceptions import DatabaseException
from shopdesk.core.logger import get_logger
from shopdesk.models.base import new_id, utc_now
from shopdesk.stores.database import database_session

if TYPE_CHECKING:
    from shopdesk.services.settings_registry import SettingsCategory

logger = get_logger(__name__)


def _dialect_insert(db: Session) -> Any:
    """Return the dialect-specific ``insert`` that supports ON CONFLICT."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise DatabaseException(
            f"Atomic settings upsert is not supported on '{dialect}'",
            DatabaseErrorCode.QUERY_FAILED,
            details={"dialect": dialect},
        )
    return insert


class SettingsStore:
    """Read and upsert settings rows for any registered category."""

    def fetch_first(self, category: "SettingsCategory", scope: str) -> Optional[Any]:
        """Return the row stored for ``scope`` or ``None`` when none exists yet."""
        model = category.model
        key_column = getattr(model, category.key_column)
        stmt = select(model).where(key_column == scope)
        if category.newest_first:
            stmt = stmt.order_by(model.updated_at.desc())
        try:
            with database_session() as db:
                return db.execute(stmt.limit(1)).scalars().first()
        except SQLAlchemyError as exc:
            logger.error(
                "Failed to load %s settings (%s): %s", category.name, scope, exc
            )
            raise DatabaseException.wrap(
                exc,
                f"Failed to load {category.name} settings",
                DatabaseErrorCode.QUERY_FAILED,
                category=category.name,
                scope=scope,
            ) from exc

    def fetch_all(self, category: "SettingsCategory") -> List[Any]:
        """Return every row of the category ordered by its key column."""
        model = category.model
        stmt = select(model).order_by(getattr(model, category.key_column))
        try:
            with database_session() as db:
                return list(db.execute(stmt).scalars().all())
        except SQLAlchemyError as exc:
            logger.error("Failed to list %s settings: %s", category.name, exc)
            raise DatabaseException.wrap(
                exc,
                f"Failed to list {category.name} settings",
                DatabaseErrorCode.QUERY_FAILED,
                category=category.name,
            ) from exc

    def upsert(
        self,
        category: "SettingsCategory",
        scope: str,
        partial: Mapping[str, Any],
        atomic: bool = True,
    ) -> Any:
        """
        Write ``partial`` to the row of ``scope``, creating it when absent.

        A new row receives ``defaults | partial``; an existing row changes only
        the fields in ``partial``. The returned row is re-read after commit.

        Args:
            category: Settings category description
            scope: Value of the category key column
            partial: Validated field values to write
            atomic: Use one INSERT ... ON CONFLICT DO UPDATE statement instead of
                resolving the row id first

        Raises:
            DatabaseException: SETTINGS_UPSERT_FAILED on any store error
        """
        try:
            with database_session() as db:
                if atomic:
                    self._upsert_on_conflict(db, category, scope, dict(partial))
                else:
                    self._check_then_write(db, category, scope, dict(partial))
                db.commit()

                key_column = getattr(category.model, category.key_column)
                row = db.execute(
                    select(category.model).where(key_column == scope)
                ).scalar_one()
                logger.info(
                    "Persisted %s settings (%s): %s",
                    category.name,
                    scope,
                    ", ".join(sorted(partial)) or "no fields",
                )
                return row
        except (SQLAlchemyError, DatabaseException) as exc:
            logger.error(
                "Failed to persist %s settings (%s): %s", category.name, scope, exc
            )
            raise DatabaseException.wrap(
                exc,
                f"Failed to persist {category.name} settings",
                SettingsErrorCode.UPSERT_FAILED,
                category=category.name,
                scope=scope,
            ) from exc

    def _upsert_on_conflict(
        self,
        db: Session,
        category: "SettingsCategory",
        scope: str,
        partial: Dict[str, Any],
    ) -> None:
        insert = _dialect_insert(db)
        now = utc_now()
        values = {
            **category.defaults(),
            **partial,
            category.key_column: scope,
            "id": new_id(),
            "created_at": now,
            "updated_at": now,
        }
        stmt = insert(category.model).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[category.key_column],
            set_={**partial, "updated_at": now},
        )
        db.execute(stmt)

    def _check_then_write(
        self,
        db: Session,
        category: "SettingsCategory",
        scope: str,
        partial: Dict[str, Any],
    ) -> None:
        model = category.model
        existing_id = db.execute(
            select(model.id)
            .where(getattr(model, category.key_column) == scope)
            .limit(1)
        ).scalar_one_or_none()

        if existing_id is not None:
            db.execute(
                update(model)
                .where(model.id == existing_id)
                .values(**partial, updated_at=utc_now())
            )
        else:
            db.add(
                model(**{**category.defaults(), **partial, category.key_column: scope})
            )


__all__ = ["SettingsStore"]
