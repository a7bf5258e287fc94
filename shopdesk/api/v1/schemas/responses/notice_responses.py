"""Notice response schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class NoticeResponse(BaseModel):
    id: str
    level: str = Field(..., examples=["success", "error", "info", "warning"])
    message: str
    description: Optional[str] = None
    duration_ms: int = Field(..., description="How long clients show the notice")
    created_at: datetime
