"""
API v1 Converters

Conversion between API schemas and service layer data.
"""

from .settings_converters import (
    convert_notice_to_response,
    convert_settings_record_to_response,
    convert_settings_update_request,
)

__all__ = [
    "convert_notice_to_response",
    "convert_settings_record_to_response",
    "convert_settings_update_request",
]
