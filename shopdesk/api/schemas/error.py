"""
API Error Response Schemas

Pydantic models for standardized error responses in FastAPI.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ValidationErrorDetail(BaseModel):
    """Individual validation error detail."""

    loc: List[str | int] = Field(..., description="Location of the error in the input")
    msg: str = Field(..., description="Error message")
    type: str = Field(..., description="Error type")
    ctx: Optional[Dict[str, Any]] = Field(None, description="Additional context")


class ErrorDetail(BaseModel):
    """Detailed error information."""

    type: str = Field(..., description="Exception type", examples=["AuthException"])
    message: str = Field(..., description="Human-readable error message")
    code: Optional[str] = Field(
        None,
        description="Machine-readable error code",
        examples=["AUTH_MISSING_CREDENTIALS"],
    )
    details: Optional[Dict[str, Any]] = Field(
        None, description="Additional error details"
    )
    debug: Optional[Dict[str, Any]] = Field(
        None, description="Debug information (only in debug mode)"
    )


class ErrorResponse(BaseModel):
    """Standard error response format."""

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "examples": [
                {
                    "error": {
                        "type": "ValidationException",
                        "message": "Fields of settings category 'pathao' cannot be null: access_token",
                        "code": "SETTINGS_NULL_FIELD",
                        "details": {"category": "pathao", "fields": ["access_token"]},
                    },
                    "request_id": "3f6c1d0e-8a52-4c1b-9a57-0f1f2b7d8e11",
                    "path": "/api/v1/settings/pathao",
                    "method": "PUT",
                }
            ]
        },
    )

    error: ErrorDetail = Field(..., description="Error details")
    request_id: Optional[str] = Field(None, description="Request ID for tracing")
    path: Optional[str] = Field(
        None, description="Request path", examples=["/api/v1/settings/pathao"]
    )
    method: Optional[str] = Field(None, description="HTTP method", examples=["PUT"])
