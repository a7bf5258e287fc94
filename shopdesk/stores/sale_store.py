"""Store for the courier-related state of sales."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError

from shopdesk.core.error_codes import DatabaseErrorCode
from shopdesk.core.exceptions import DatabaseException
from shopdesk.core.logger import get_logger
from shopdesk.models import CourierStatusLog, Sale
from shopdesk.stores.database import database_session, transaction_manager

logger = get_logger(__name__)

FINAL_COURIER_STATUSES = ("delivered", "returned", "lost")


def sale_snapshot(sale: Sale) -> Dict[str, Any]:
    """Column values of a sale as a plain dict."""
    return {column.key: getattr(sale, column.key) for column in Sale.__table__.columns}


class SaleStore:
    """Queries and courier updates on the ``sales`` table."""

    def get(self, sale_id: str) -> Optional[Sale]:
        try:
            with database_session() as db:
                return db.get(Sale, sale_id)
        except SQLAlchemyError as exc:
            logger.error("Failed to load sale %s: %s", sale_id, exc)
            raise DatabaseException(
                f"Failed to load sale: {sale_id}", DatabaseErrorCode.QUERY_FAILED
            ) from exc

    def find_by_consignment(self, consignment_id: str) -> Optional[Sale]:
        try:
            with database_session() as db:
                return db.execute(
                    select(Sale).where(Sale.consignment_id == consignment_id).limit(1)
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("Failed to find sale by consignment %s: %s", consignment_id, exc)
            raise DatabaseException(
                f"Failed to find sale by consignment: {consignment_id}",
                DatabaseErrorCode.QUERY_FAILED,
            ) from exc

    def list_pending_delivery(self) -> List[Sale]:
        """Sales handed to the courier whose status is not final yet."""
        stmt = (
            select(Sale)
            .where(Sale.consignment_id.is_not(None))
            .where(
                or_(
                    Sale.courier_status.is_(None),
                    Sale.courier_status.not_in(FINAL_COURIER_STATUSES),
                )
            )
            .order_by(Sale.created_at)
        )
        try:
            with database_session() as db:
                return list(db.execute(stmt).scalars().all())
        except SQLAlchemyError as exc:
            logger.error("Failed to list sales awaiting delivery: %s", exc)
            raise DatabaseException(
                "Failed to list sales awaiting delivery",
                DatabaseErrorCode.QUERY_FAILED,
            ) from exc

    def update_courier_fields(
        self,
        sale_id: str,
        values: Mapping[str, Any],
        status_log: Optional[Mapping[str, Any]] = None,
    ) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """
        Update a sale and optionally append a courier status log in one transaction.

        Returns:
            The sale's column values before and after the update

        Raises:
            DatabaseException: If the sale does not exist or the write fails
        """
        with database_session() as db:
            sale = db.get(Sale, sale_id)
            if sale is None:
                raise DatabaseException(
                    f"Sale not found: {sale_id}",
                    DatabaseErrorCode.QUERY_FAILED,
                    details={"sale_id": sale_id},
                )
            before = sale_snapshot(sale)
            with transaction_manager(db) as tx:
                for name, value in values.items():
                    setattr(sale, name, value)
                if status_log is not None:
                    tx.add(CourierStatusLog(sale_id=sale_id, **status_log))
                tx.flush()
                after = sale_snapshot(sale)

        logger.info(
            "Updated sale %s: %s", sale_id, ", ".join(sorted(values)) or "no fields"
        )
        return before, after


__all__ = ["FINAL_COURIER_STATUSES", "SaleStore", "sale_snapshot"]
