"""Sale and courier status log SQLAlchemy models.

Only the columns the courier integration reads or writes are mapped here.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseDBModel


class Sale(BaseDBModel):
    """A customer order and its courier delivery state."""

    __tablename__ = "sales"

    invoice_number: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    customer_phone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    customer_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    grand_total: Mapped[Optional[float]] = mapped_column(nullable=True)
    order_status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="pending"
    )
    payment_status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="pending"
    )
    courier_status: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    consignment_id: Mapped[Optional[str]] = mapped_column(
        String(128), nullable=True, index=True
    )
    tracking_number: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    current_location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    courier_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_status_check: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return (
            f"<Sale(id='{self.id}', invoice='{self.invoice_number}', "
            f"courier_status='{self.courier_status}')>"
        )


class CourierStatusLog(BaseDBModel):
    """Audit row appended for every inbound courier status change."""

    __tablename__ = "courier_status_logs"

    sale_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sales.id", ondelete="CASCADE"), nullable=False
    )
    consignment_id: Mapped[str] = mapped_column(String(128), nullable=False)
    old_status: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    new_status: Mapped[str] = mapped_column(String(64), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String(32), nullable=False, default="webhook")


__all__ = ["Sale", "CourierStatusLog"]
