"""Settings converters."""

from typing import Any, Dict, Mapping

from pydantic import ValidationError

from shopdesk.api.v1.schemas.requests import SETTINGS_UPDATE_REQUESTS
from shopdesk.api.v1.schemas.responses import NoticeResponse, SettingsResponse
from shopdesk.core.error_codes import ValidationErrorCode
from shopdesk.core.exceptions import ValidationException
from shopdesk.services.notice_service import Notice
from shopdesk.services.settings_registry import SettingsRecord, get_category


def convert_settings_update_request(
    category_name: str, body: Mapping[str, Any]
) -> Dict[str, Any]:
    """
    Validate a raw update body against the category's request schema.

    Returns only the fields the caller sent.

    Raises:
        ValidationException: Unknown category or invalid body
    """
    get_category(category_name)
    schema = SETTINGS_UPDATE_REQUESTS[category_name]
    try:
        request = schema.model_validate(body)
    except ValidationError as exc:
        raise ValidationException(
            f"Invalid {category_name} settings update",
            ValidationErrorCode.INVALID_INPUT,
            details={"validation_errors": exc.errors(include_url=False)},
        ) from exc
    return request.model_dump(exclude_unset=True)


def convert_settings_record_to_response(record: SettingsRecord) -> SettingsResponse:
    """Convert a service layer settings record to the API response."""

    return SettingsResponse(
        id=record.id,
        category=record.category,
        scope=record.scope,
        exists=record.exists,
        values=dict(record.values),
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def convert_notice_to_response(notice: Notice) -> NoticeResponse:
    return NoticeResponse(**notice.model_dump())
