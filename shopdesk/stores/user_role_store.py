"""Store for application user roles."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from shopdesk.core.error_codes import DatabaseErrorCode
from shopdesk.core.exceptions import DatabaseException
from shopdesk.core.logger import get_logger
from shopdesk.models import UserRole
from shopdesk.stores.database import database_session

logger = get_logger(__name__)


class UserRoleStore:
    """Role lookups backing admin checks and first-time setup detection."""

    def get_role(self, user_id: str) -> Optional[str]:
        try:
            with database_session() as db:
                return db.execute(
                    select(UserRole.role).where(UserRole.user_id == user_id)
                ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("Failed to load role of user %s: %s", user_id, exc)
            raise DatabaseException(
                f"Failed to load role of user: {user_id}",
                DatabaseErrorCode.QUERY_FAILED,
            ) from exc

    def role_exists(self, role: str) -> bool:
        try:
            with database_session() as db:
                found = db.execute(
                    select(UserRole.id).where(UserRole.role == role).limit(1)
                ).first()
                return found is not None
        except SQLAlchemyError as exc:
            logger.error("Failed to check for %s users: %s", role, exc)
            raise DatabaseException(
                f"Failed to check for {role} users", DatabaseErrorCode.QUERY_FAILED
            ) from exc


__all__ = ["UserRoleStore"]
