"""Settings response schemas."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class SettingsResponse(BaseModel):
    """One settings record; ``exists`` is false for never-saved defaults."""

    id: str = Field(..., description="Row id, empty for a default record")
    category: str = Field(..., examples=["pathao"])
    scope: str = Field(..., description="Singleton key, setting type or user id")
    exists: bool
    values: Dict[str, Any] = Field(..., description="Typed settings fields")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = Field(
        None, description="Timestamp of the last persisted change"
    )


class FirstTimeSetupResponse(BaseModel):
    is_first_time: bool = Field(
        ..., description="True while no admin account exists"
    )
