"""Settings SQLAlchemy models, one table per settings category.

Every table carries a UNIQUE category key column so the database itself
guarantees at most one row per category (singletons use ``singleton_key``).
"""

from typing import Optional

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseDBModel

SINGLETON_KEY = "default"


class PathaoSettings(BaseDBModel):
    """Pathao courier API credentials and order defaults."""

    __tablename__ = "pathao_settings"

    singleton_key: Mapped[str] = mapped_column(
        String(32), unique=True, nullable=False, default=SINGLETON_KEY
    )
    api_base_url: Mapped[str] = mapped_column(
        String(255), nullable=False, default="https://api-hermes.pathao.com"
    )
    access_token: Mapped[str] = mapped_column(Text, nullable=False, default="")
    store_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    default_delivery_type: Mapped[int] = mapped_column(
        Integer, nullable=False, default=48
    )
    default_item_type: Mapped[int] = mapped_column(Integer, nullable=False, default=2)


class CourierWebhookSettings(BaseDBModel):
    """Outbound courier webhook (n8n relay) configuration."""

    __tablename__ = "courier_webhook_settings"

    singleton_key: Mapped[str] = mapped_column(
        String(32), unique=True, nullable=False, default=SINGLETON_KEY
    )
    webhook_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    webhook_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    webhook_description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status_check_webhook_url: Mapped[str] = mapped_column(
        Text, nullable=False, default=""
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    auth_username: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    auth_password: Mapped[str] = mapped_column(String(255), nullable=False, default="")


class SystemSettings(BaseDBModel):
    """Locale formatting plus the invoice webhook relay configuration."""

    __tablename__ = "system_settings"

    singleton_key: Mapped[str] = mapped_column(
        String(32), unique=True, nullable=False, default=SINGLETON_KEY
    )
    currency_symbol: Mapped[str] = mapped_column(String(8), nullable=False, default="৳")
    currency_code: Mapped[str] = mapped_column(String(8), nullable=False, default="BDT")
    timezone: Mapped[str] = mapped_column(
        String(64), nullable=False, default="Asia/Dhaka"
    )
    date_format: Mapped[str] = mapped_column(
        String(32), nullable=False, default="dd/MM/yyyy"
    )
    time_format: Mapped[str] = mapped_column(String(8), nullable=False, default="12h")
    invoice_webhook_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    invoice_webhook_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    invoice_webhook_auth_token: Mapped[str] = mapped_column(
        Text, nullable=False, default=""
    )
    invoice_webhook_timeout: Mapped[int] = mapped_column(
        Integer, nullable=False, default=30
    )


class BusinessSettings(BaseDBModel):
    """Business identity shown on invoices."""

    __tablename__ = "business_settings"

    singleton_key: Mapped[str] = mapped_column(
        String(32), unique=True, nullable=False, default=SINGLETON_KEY
    )
    business_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    logo_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    phone: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    whatsapp: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    facebook: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    invoice_prefix: Mapped[str] = mapped_column(String(16), nullable=False, default="INV")
    invoice_footer_message: Mapped[str] = mapped_column(
        Text, nullable=False, default=""
    )
    brand_color: Mapped[str] = mapped_column(String(16), nullable=False, default="")
    low_stock_alert_quantity: Mapped[int] = mapped_column(
        Integer, nullable=False, default=10
    )


class CustomSetting(BaseDBModel):
    """Custom CSS or head/body snippet; one row per ``setting_type``."""

    __tablename__ = "custom_settings"

    setting_type: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class UserPreferences(BaseDBModel):
    """Per-user notification and display preferences."""

    __tablename__ = "user_preferences"

    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    email_notifications: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    low_stock_alerts: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sales_reports: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    dark_mode: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    compact_view: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


__all__ = [
    "SINGLETON_KEY",
    "PathaoSettings",
    "CourierWebhookSettings",
    "SystemSettings",
    "BusinessSettings",
    "CustomSetting",
    "UserPreferences",
]
