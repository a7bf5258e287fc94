"""User preference endpoints."""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from shopdesk.api.dependencies import require_self
from shopdesk.api.v1.converters import (
    convert_settings_record_to_response,
    convert_settings_update_request,
)
from shopdesk.api.v1.schemas.responses import SettingsResponse
from shopdesk.services.settings_service import SettingsService, get_settings_service

router = APIRouter(
    prefix="/preferences",
    tags=["preferences"],
    dependencies=[Depends(require_self)],
)


@router.get("/{user_id}", response_model=SettingsResponse)
async def get_preferences(
    user_id: str,
    service: SettingsService = Depends(get_settings_service),
) -> SettingsResponse:
    record = await service.get("user_preferences", user_id)
    return convert_settings_record_to_response(record)


@router.put("/{user_id}", response_model=SettingsResponse)
async def update_preferences(
    user_id: str,
    body: Dict[str, Any] = Body(...),
    service: SettingsService = Depends(get_settings_service),
) -> SettingsResponse:
    partial = convert_settings_update_request("user_preferences", body)
    record = await service.upsert("user_preferences", partial, scope=user_id)
    return convert_settings_record_to_response(record)


__all__ = ["router"]
