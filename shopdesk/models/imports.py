"""WooCommerce import and sync log SQLAlchemy models."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseDBModel

STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


class WooCommerceImportLog(BaseDBModel):
    """Progress record of a WooCommerce product import run."""

    __tablename__ = "woocommerce_import_logs"

    connection_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=STATUS_IN_PROGRESS
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


class WooCommerceSyncLog(BaseDBModel):
    """Progress record of a WooCommerce live sync run."""

    __tablename__ = "woocommerce_sync_logs"

    connection_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=STATUS_IN_PROGRESS
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


__all__ = [
    "STATUS_IN_PROGRESS",
    "STATUS_COMPLETED",
    "STATUS_FAILED",
    "WooCommerceImportLog",
    "WooCommerceSyncLog",
]
