"""
V1 API Request Schemas

Request schemas for all API v1 endpoints.
"""

from .function_requests import (
    AdminDeleteUserRequest,
    CourierStatusCheckRequest,
    StopImportRequest,
    StopSyncRequest,
)
from .settings_requests import (
    SETTINGS_UPDATE_REQUESTS,
    BusinessSettingsUpdateRequest,
    CourierWebhookSettingsUpdateRequest,
    CustomSettingUpdateRequest,
    PathaoSettingsUpdateRequest,
    SystemSettingsUpdateRequest,
    UserPreferencesUpdateRequest,
)

__all__ = [
    "AdminDeleteUserRequest",
    "CourierStatusCheckRequest",
    "StopImportRequest",
    "StopSyncRequest",
    "SETTINGS_UPDATE_REQUESTS",
    "PathaoSettingsUpdateRequest",
    "CourierWebhookSettingsUpdateRequest",
    "SystemSettingsUpdateRequest",
    "BusinessSettingsUpdateRequest",
    "CustomSettingUpdateRequest",
    "UserPreferencesUpdateRequest",
]
