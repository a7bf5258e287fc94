"""
V1 API Schemas Package

Pydantic models for API request and response data.
"""

from .requests import (
    SETTINGS_UPDATE_REQUESTS,
    AdminDeleteUserRequest,
    CourierStatusCheckRequest,
    StopImportRequest,
    StopSyncRequest,
)
from .responses import (
    FirstTimeSetupResponse,
    HealthResponse,
    NoticeResponse,
    SettingsResponse,
)

__all__ = [
    "SETTINGS_UPDATE_REQUESTS",
    "AdminDeleteUserRequest",
    "CourierStatusCheckRequest",
    "StopImportRequest",
    "StopSyncRequest",
    "FirstTimeSetupResponse",
    "HealthResponse",
    "NoticeResponse",
    "SettingsResponse",
]
