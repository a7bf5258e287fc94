"""
Settings endpoints.

Singleton categories (pathao, courier_webhook, system, business) live at
``/settings/{category}``; custom code snippets at ``/settings/custom``.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends

from shopdesk.api.dependencies import require_user
from shopdesk.api.v1.converters import (
    convert_settings_record_to_response,
    convert_settings_update_request,
)
from shopdesk.api.v1.schemas.responses import SettingsResponse
from shopdesk.services.settings_service import SettingsService, get_settings_service

router = APIRouter(
    prefix="/settings", tags=["settings"], dependencies=[Depends(require_user)]
)


@router.get("/custom", response_model=List[SettingsResponse])
async def list_custom_settings(
    service: SettingsService = Depends(get_settings_service),
) -> List[SettingsResponse]:
    records = await service.list_custom()
    return [convert_settings_record_to_response(record) for record in records]


@router.get("/custom/{setting_type}", response_model=SettingsResponse)
async def get_custom_setting(
    setting_type: str,
    service: SettingsService = Depends(get_settings_service),
) -> SettingsResponse:
    record = await service.get_custom(setting_type)
    return convert_settings_record_to_response(record)


@router.put("/custom/{setting_type}", response_model=SettingsResponse)
async def update_custom_setting(
    setting_type: str,
    body: Dict[str, Any] = Body(...),
    service: SettingsService = Depends(get_settings_service),
) -> SettingsResponse:
    partial = convert_settings_update_request("custom", body)
    record = await service.upsert("custom", partial, scope=setting_type)
    return convert_settings_record_to_response(record)


@router.get("/{category}", response_model=SettingsResponse)
async def get_settings(
    category: str,
    service: SettingsService = Depends(get_settings_service),
) -> SettingsResponse:
    """Return the category's record; defaults when it was never saved."""
    record = await service.get(category)
    return convert_settings_record_to_response(record)


@router.put("/{category}", response_model=SettingsResponse)
async def update_settings(
    category: str,
    body: Dict[str, Any] = Body(...),
    service: SettingsService = Depends(get_settings_service),
) -> SettingsResponse:
    """Write the supplied fields, creating the row on first save."""
    partial = convert_settings_update_request(category, body)
    record = await service.upsert(category, partial)
    return convert_settings_record_to_response(record)


__all__ = ["router"]
