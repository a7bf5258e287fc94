"""
V1 API Response Schemas

Response schemas for all API v1 endpoints.
"""

from .health_response import HealthResponse
from .notice_responses import NoticeResponse
from .settings_responses import FirstTimeSetupResponse, SettingsResponse

__all__ = [
    "FirstTimeSetupResponse",
    "HealthResponse",
    "NoticeResponse",
    "SettingsResponse",
]
