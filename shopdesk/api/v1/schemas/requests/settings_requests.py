"""
Settings request schemas.

Every field is optional: a request carries only the fields being changed,
and only those are written. An explicit null is refused for columns that
are NOT NULL when the partial is validated against the category.
"""

from typing import Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, Field


class _PartialUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")


class PathaoSettingsUpdateRequest(_PartialUpdate):
    api_base_url: Optional[str] = Field(None, description="Pathao API base URL")
    access_token: Optional[str] = None
    store_id: Optional[int] = Field(None, ge=0)
    default_delivery_type: Optional[int] = None
    default_item_type: Optional[int] = None


class CourierWebhookSettingsUpdateRequest(_PartialUpdate):
    webhook_url: Optional[str] = Field(None, description="Order submission webhook")
    webhook_name: Optional[str] = None
    webhook_description: Optional[str] = None
    status_check_webhook_url: Optional[str] = Field(
        None, description="Webhook polled for consignment status"
    )
    is_active: Optional[bool] = None
    auth_username: Optional[str] = None
    auth_password: Optional[str] = None


class SystemSettingsUpdateRequest(_PartialUpdate):
    currency_symbol: Optional[str] = Field(None, max_length=8)
    currency_code: Optional[str] = Field(None, min_length=3, max_length=3)
    timezone: Optional[str] = None
    date_format: Optional[str] = None
    time_format: Optional[str] = Field(None, pattern="^(12h|24h)$")
    invoice_webhook_url: Optional[str] = None
    invoice_webhook_enabled: Optional[bool] = None
    invoice_webhook_auth_token: Optional[str] = None
    invoice_webhook_timeout: Optional[int] = Field(
        None, description="Seconds; clamped to 5..120 when used"
    )


class BusinessSettingsUpdateRequest(_PartialUpdate):
    business_name: Optional[str] = None
    logo_url: Optional[str] = None
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    email: Optional[str] = None
    facebook: Optional[str] = None
    address: Optional[str] = None
    invoice_prefix: Optional[str] = Field(None, max_length=16)
    invoice_footer_message: Optional[str] = None
    brand_color: Optional[str] = None
    low_stock_alert_quantity: Optional[int] = Field(None, ge=0)


class CustomSettingUpdateRequest(_PartialUpdate):
    content: Optional[str] = Field(None, description="CSS or HTML snippet")
    is_enabled: Optional[bool] = None


class UserPreferencesUpdateRequest(_PartialUpdate):
    email_notifications: Optional[bool] = None
    low_stock_alerts: Optional[bool] = None
    sales_reports: Optional[bool] = None
    dark_mode: Optional[bool] = None
    compact_view: Optional[bool] = None


SETTINGS_UPDATE_REQUESTS: Dict[str, Type[_PartialUpdate]] = {
    "pathao": PathaoSettingsUpdateRequest,
    "courier_webhook": CourierWebhookSettingsUpdateRequest,
    "system": SystemSettingsUpdateRequest,
    "business": BusinessSettingsUpdateRequest,
    "custom": CustomSettingUpdateRequest,
    "user_preferences": UserPreferencesUpdateRequest,
}


__all__ = [
    "BusinessSettingsUpdateRequest",
    "CourierWebhookSettingsUpdateRequest",
    "CustomSettingUpdateRequest",
    "PathaoSettingsUpdateRequest",
    "SETTINGS_UPDATE_REQUESTS",
    "SystemSettingsUpdateRequest",
    "UserPreferencesUpdateRequest",
]
