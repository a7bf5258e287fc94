"""
Core Package

Configuration, error handling, and logging for shopdesk.
"""

# ruff: noqa: F401  # All imports are re-exported via __all__

from .config import Settings, settings  # noqa: F401
from .error_codes import (  # noqa: F401
    ERROR_CODE_MAP,
    APIErrorCode,
    AuthErrorCode,
    ConfigurationErrorCode,
    DatabaseErrorCode,
    RealtimeErrorCode,
    RedisErrorCode,
    SettingsErrorCode,
    ValidationErrorCode,
    WebhookErrorCode,
    get_error_info,
    get_http_status_code,
)
from .exceptions import (  # noqa: F401
    APIException,
    ApplicationException,
    AuthException,
    ConfigurationException,
    DatabaseException,
    RealtimeException,
    RedisException,
    ValidationException,
    WebhookException,
)
from .logger import get_logger  # noqa: F401

__all__ = [
    # Configuration
    "Settings",
    "settings",
    # Error codes
    "ConfigurationErrorCode",
    "DatabaseErrorCode",
    "RedisErrorCode",
    "SettingsErrorCode",
    "RealtimeErrorCode",
    "WebhookErrorCode",
    "APIErrorCode",
    "ValidationErrorCode",
    "AuthErrorCode",
    "ERROR_CODE_MAP",
    "get_http_status_code",
    "get_error_info",
    # Exceptions
    "ApplicationException",
    "ConfigurationException",
    "DatabaseException",
    "RedisException",
    "RealtimeException",
    "WebhookException",
    "APIException",
    "ValidationException",
    "AuthException",
    # Logger
    "get_logger",
]
