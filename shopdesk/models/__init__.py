"""
Models Package

SQLAlchemy models for shopdesk database entities.
"""

from .base import Base, BaseDBModel, TimestampMixin
from .imports import WooCommerceImportLog, WooCommerceSyncLog
from .sales import CourierStatusLog, Sale
from .settings import (
    BusinessSettings,
    CourierWebhookSettings,
    CustomSetting,
    PathaoSettings,
    SystemSettings,
    UserPreferences,
)
from .user_role import UserRole

__all__ = [
    # Base classes
    "Base",
    "BaseDBModel",
    "TimestampMixin",
    # Settings
    "PathaoSettings",
    "CourierWebhookSettings",
    "SystemSettings",
    "BusinessSettings",
    "CustomSetting",
    "UserPreferences",
    # Sales
    "Sale",
    "CourierStatusLog",
    # WooCommerce
    "WooCommerceImportLog",
    "WooCommerceSyncLog",
    # Auth
    "UserRole",
]
