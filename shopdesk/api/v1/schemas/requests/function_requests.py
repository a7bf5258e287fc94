"""Request bodies of the privileged function endpoints."""

from typing import Optional

from pydantic import BaseModel, Field


class StopImportRequest(BaseModel):
    importLogId: Optional[str] = Field(None, description="Import log to stop")


class StopSyncRequest(BaseModel):
    syncLogId: Optional[str] = Field(None, description="Sync log to stop")


class AdminDeleteUserRequest(BaseModel):
    userId: Optional[str] = Field(None, description="Auth user to delete")


class CourierStatusCheckRequest(BaseModel):
    """Check one consignment, or refresh every pending one when omitted."""

    consignment_id: Optional[str] = None


__all__ = [
    "AdminDeleteUserRequest",
    "CourierStatusCheckRequest",
    "StopImportRequest",
    "StopSyncRequest",
]
