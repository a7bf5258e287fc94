"""Health check response schema."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ComponentHealth(BaseModel):
    """Status of one backing service (database, redis) or of the API itself."""

    model_config = ConfigDict(extra="allow")

    status: str = Field(..., examples=["healthy", "unhealthy", "disabled"])
    details: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class HealthResponse(BaseModel):
    status: str = Field(
        ..., description="healthy unless an enabled component check failed"
    )
    timestamp: str = Field(..., description="ISO timestamp of the check")
    version: str
    environment: str
    components: Dict[str, ComponentHealth]

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "unhealthy",
                "timestamp": "2025-03-02T08:15:00+00:00",
                "version": "1.0.0",
                "environment": "production",
                "components": {
                    "database": {
                        "status": "healthy",
                        "details": {"connection_test": "passed"},
                    },
                    "redis": {"status": "unhealthy", "error": "Connection refused"},
                },
            }
        }
    )
