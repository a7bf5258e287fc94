"""
Error Codes

Standardized error codes for shopdesk.
"""

from enum import StrEnum
from types import MappingProxyType
from typing import Any, Dict, Mapping


class ErrorCode(StrEnum):
    """Base error code enum (string-based)."""


class ConfigurationErrorCode(ErrorCode):
    """Configuration-related error codes."""

    INVALID_CONFIG = "CONFIGURATION_INVALID_CONFIG"
    MISSING_CONFIG = "CONFIGURATION_MISSING_CONFIG"


class DatabaseErrorCode(ErrorCode):
    """Database-related error codes."""

    CONNECTION_FAILED = "DATABASE_CONNECTION_FAILED"
    QUERY_FAILED = "DATABASE_QUERY_FAILED"
    TRANSACTION_FAILED = "DATABASE_TRANSACTION_FAILED"


class RedisErrorCode(ErrorCode):
    """Redis-related error codes."""

    CONNECTION_FAILED = "REDIS_CONNECTION_FAILED"
    OPERATION_FAILED = "REDIS_OPERATION_FAILED"


class SettingsErrorCode(ErrorCode):
    """Settings store error codes."""

    UNKNOWN_CATEGORY = "SETTINGS_UNKNOWN_CATEGORY"
    INVALID_SCOPE = "SETTINGS_INVALID_SCOPE"
    UNKNOWN_FIELD = "SETTINGS_UNKNOWN_FIELD"
    NULL_FIELD = "SETTINGS_NULL_FIELD"
    UPSERT_FAILED = "SETTINGS_UPSERT_FAILED"


class RealtimeErrorCode(ErrorCode):
    """Realtime change feed error codes."""

    SUBSCRIBE_FAILED = "REALTIME_SUBSCRIBE_FAILED"
    DELIVERY_FAILED = "REALTIME_DELIVERY_FAILED"
    PUBLISH_FAILED = "REALTIME_PUBLISH_FAILED"


class WebhookErrorCode(ErrorCode):
    """Outbound webhook error codes."""

    NOT_CONFIGURED = "WEBHOOK_NOT_CONFIGURED"
    DELIVERY_FAILED = "WEBHOOK_DELIVERY_FAILED"
    TIMEOUT = "WEBHOOK_TIMEOUT"
    INVALID_PAYLOAD = "WEBHOOK_INVALID_PAYLOAD"


class APIErrorCode(ErrorCode):
    """API-related error codes."""

    INVALID_REQUEST = "API_INVALID_REQUEST"
    UNAUTHORIZED = "API_UNAUTHORIZED"
    FORBIDDEN = "API_FORBIDDEN"
    NOT_FOUND = "API_NOT_FOUND"
    METHOD_NOT_ALLOWED = "API_METHOD_NOT_ALLOWED"
    INTERNAL_ERROR = "API_INTERNAL_ERROR"


class ValidationErrorCode(ErrorCode):
    """Validation-related error codes."""

    INVALID_INPUT = "VALIDATION_INVALID_INPUT"
    MISSING_FIELD = "VALIDATION_MISSING_FIELD"
    INVALID_FORMAT = "VALIDATION_INVALID_FORMAT"


class AuthErrorCode(ErrorCode):
    """Authentication/authorization error codes."""

    MISSING_CREDENTIALS = "AUTH_MISSING_CREDENTIALS"
    INVALID_CREDENTIALS = "AUTH_INVALID_CREDENTIALS"
    INSUFFICIENT_PERMISSIONS = "AUTH_INSUFFICIENT_PERMISSIONS"
    SERVICE_UNAVAILABLE = "AUTH_SERVICE_UNAVAILABLE"
    OPERATION_FAILED = "AUTH_OPERATION_FAILED"


# Error code to HTTP status mapping
#
# CONVENTIONS FOR ADDING NEW ERROR CODES:
# 1. Error code names should be descriptive and use UPPER_SNAKE_CASE
# 2. Error code values MUST include domain prefixes for global uniqueness:
#    DATABASE_*, REDIS_*, SETTINGS_*, REALTIME_*, WEBHOOK_*, API_*, AUTH_*, ...
# 3. Always add corresponding HTTP status mapping in this dictionary
# 4. 400 client errors, 401 authentication, 403 authorization, 404 not found,
#    422 request format (FastAPI), 500 internal, 502 upstream rejected,
#    503 dependency unavailable, 504 upstream timeout
#
ERROR_CODE_MAP: Mapping[ErrorCode, int] = MappingProxyType(
    {
        # Configuration errors
        ConfigurationErrorCode.INVALID_CONFIG: 500,
        ConfigurationErrorCode.MISSING_CONFIG: 500,
        # Database errors
        DatabaseErrorCode.CONNECTION_FAILED: 503,
        DatabaseErrorCode.QUERY_FAILED: 500,
        DatabaseErrorCode.TRANSACTION_FAILED: 500,
        # Redis errors
        RedisErrorCode.CONNECTION_FAILED: 503,
        RedisErrorCode.OPERATION_FAILED: 500,
        # Settings errors
        SettingsErrorCode.UNKNOWN_CATEGORY: 404,
        SettingsErrorCode.INVALID_SCOPE: 400,
        SettingsErrorCode.UNKNOWN_FIELD: 400,
        SettingsErrorCode.NULL_FIELD: 400,
        SettingsErrorCode.UPSERT_FAILED: 500,
        # Realtime errors
        RealtimeErrorCode.SUBSCRIBE_FAILED: 503,
        RealtimeErrorCode.DELIVERY_FAILED: 500,
        RealtimeErrorCode.PUBLISH_FAILED: 500,
        # Webhook errors
        WebhookErrorCode.NOT_CONFIGURED: 400,
        WebhookErrorCode.DELIVERY_FAILED: 502,
        WebhookErrorCode.TIMEOUT: 504,
        WebhookErrorCode.INVALID_PAYLOAD: 400,
        # API errors
        APIErrorCode.INVALID_REQUEST: 400,
        APIErrorCode.UNAUTHORIZED: 401,
        APIErrorCode.FORBIDDEN: 403,
        APIErrorCode.NOT_FOUND: 404,
        APIErrorCode.METHOD_NOT_ALLOWED: 405,
        APIErrorCode.INTERNAL_ERROR: 500,
        # Validation errors
        ValidationErrorCode.INVALID_INPUT: 400,
        ValidationErrorCode.MISSING_FIELD: 400,
        ValidationErrorCode.INVALID_FORMAT: 400,
        # Auth errors
        AuthErrorCode.MISSING_CREDENTIALS: 401,
        AuthErrorCode.INVALID_CREDENTIALS: 401,
        AuthErrorCode.INSUFFICIENT_PERMISSIONS: 403,
        AuthErrorCode.SERVICE_UNAVAILABLE: 503,
        AuthErrorCode.OPERATION_FAILED: 502,
    }
)


def _get_status_for_string(error_code_str: str) -> int:
    """Helper function to get status code for string error code."""
    for code in ERROR_CODE_MAP:
        if code.value == error_code_str:
            return ERROR_CODE_MAP[code]
    return 500


def get_http_status_code(error_code: ErrorCode | str) -> int:
    """
    Get HTTP status code for an error code.

    Args:
        error_code: Error code enum or string

    Returns:
        HTTP status code (defaults to 500 if not found)
    """
    if isinstance(error_code, ErrorCode):
        return ERROR_CODE_MAP.get(error_code, 500)
    return _get_status_for_string(error_code)


def get_error_info(error_code: ErrorCode | str) -> Dict[str, Any]:
    """
    Get error information including HTTP status code.

    Args:
        error_code: Error code enum or string

    Returns:
        Dictionary with error information
    """
    code_value = error_code.value if isinstance(error_code, ErrorCode) else error_code
    return {"error_code": code_value, "http_status": get_http_status_code(error_code)}
