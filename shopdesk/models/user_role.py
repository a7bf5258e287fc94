"""User role SQLAlchemy model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseDBModel

ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_STAFF = "staff"


class UserRole(BaseDBModel):
    """Application role of an auth-service user."""

    __tablename__ = "user_roles"

    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=ROLE_STAFF)

    def __repr__(self) -> str:
        return f"<UserRole(user_id='{self.user_id}', role='{self.role}')>"


__all__ = ["ROLE_ADMIN", "ROLE_MANAGER", "ROLE_STAFF", "UserRole"]
