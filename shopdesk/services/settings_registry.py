"""
Settings category registry.

Each settings category (Pathao credentials, courier webhook, system, business,
custom code snippets, user preferences) is described once here: its table, the
UNIQUE key column that scopes a row, how scopes are validated, its query-cache
key and the notices shown after a write. The store and the service are
parametrized by these descriptions instead of repeating the read/upsert logic
per category.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import inspect as sa_inspect

from shopdesk.core.error_codes import SettingsErrorCode
from shopdesk.core.exceptions import ValidationException
from shopdesk.models import (
    BusinessSettings,
    CourierWebhookSettings,
    CustomSetting,
    PathaoSettings,
    SystemSettings,
    UserPreferences,
)
from shopdesk.models.settings import SINGLETON_KEY

CUSTOM_SETTING_TYPES = ("custom_css", "head_snippet", "body_snippet")

_BOOKKEEPING_COLUMNS = frozenset({"id", "created_at", "updated_at"})

QueryKey = Tuple[str, ...]


class SettingsRecord(BaseModel):
    """
    In-memory view of one settings row.

    ``id == ""`` and ``None`` timestamps mark a default record that has not
    been persisted yet.
    """

    model_config = ConfigDict(frozen=True)

    id: str = ""
    category: str
    scope: str
    values: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def exists(self) -> bool:
        return bool(self.id)


@dataclass(frozen=True)
class SettingsCategory:
    """Static description of one settings category."""

    name: str
    model: Type[Any]
    key_column: str
    cache_root: str
    success_message: str
    failure_message: str
    fixed_scope: Optional[str] = None
    allowed_scopes: Optional[Tuple[str, ...]] = None
    newest_first: bool = False
    scoped_cache_key: bool = False
    invalidate_whole_root: bool = False
    _columns: Tuple[str, ...] = field(default=(), init=False, repr=False)

    @property
    def fields(self) -> Tuple[str, ...]:
        """Value columns a caller may read or write."""
        if not self._columns:
            columns = tuple(
                column.key
                for column in sa_inspect(self.model).columns
                if column.key not in _BOOKKEEPING_COLUMNS
                and column.key != self.key_column
            )
            object.__setattr__(self, "_columns", columns)
        return self._columns

    def defaults(self) -> Dict[str, Any]:
        """Column defaults for every value field."""
        values: Dict[str, Any] = {}
        for column in sa_inspect(self.model).columns:
            if column.key not in self.fields:
                continue
            default = column.default
            values[column.key] = (
                default.arg if default is not None and default.is_scalar else None
            )
        return values

    def resolve_scope(self, scope: Optional[str]) -> str:
        """
        Validate a caller-supplied scope and return the key column value.

        Raises:
            ValidationException: For a scope the category does not accept
        """
        if self.fixed_scope is not None:
            if scope not in (None, "", self.fixed_scope):
                raise ValidationException(
                    f"Settings category '{self.name}' does not take a scope",
                    SettingsErrorCode.INVALID_SCOPE,
                    details={"category": self.name, "scope": scope},
                )
            return self.fixed_scope

        if not scope or not scope.strip():
            raise ValidationException(
                f"Settings category '{self.name}' requires a {self.key_column}",
                SettingsErrorCode.INVALID_SCOPE,
                details={"category": self.name},
            )
        if self.allowed_scopes is not None and scope not in self.allowed_scopes:
            raise ValidationException(
                f"Unknown {self.key_column} '{scope}'",
                SettingsErrorCode.INVALID_SCOPE,
                details={"category": self.name, "allowed": list(self.allowed_scopes)},
            )
        return scope

    def validate_partial(self, partial: Mapping[str, Any]) -> Dict[str, Any]:
        unknown = sorted(set(partial) - set(self.fields))
        if unknown:
            raise ValidationException(
                f"Unknown fields for settings category '{self.name}': {', '.join(unknown)}",
                SettingsErrorCode.UNKNOWN_FIELD,
                details={"category": self.name, "fields": unknown},
            )
        columns = sa_inspect(self.model).columns
        nulls = sorted(
            name
            for name, value in partial.items()
            if value is None and not columns[name].nullable
        )
        if nulls:
            raise ValidationException(
                f"Fields of settings category '{self.name}' cannot be null: {', '.join(nulls)}",
                SettingsErrorCode.NULL_FIELD,
                details={"category": self.name, "fields": nulls},
            )
        return dict(partial)

    def cache_key(self, scope: str) -> QueryKey:
        if self.scoped_cache_key:
            return (self.cache_root, scope)
        return (self.cache_root,)

    def invalidation_keys(self, scope: str) -> Tuple[QueryKey, ...]:
        """Query keys made stale by a successful write to ``scope``."""
        if self.invalidate_whole_root:
            return ((self.cache_root,),)
        return (self.cache_key(scope),)

    def default_record(self, scope: str) -> SettingsRecord:
        return SettingsRecord(category=self.name, scope=scope, values=self.defaults())

    def to_record(self, row: Any) -> SettingsRecord:
        return SettingsRecord(
            id=row.id,
            category=self.name,
            scope=getattr(row, self.key_column),
            values={name: getattr(row, name) for name in self.fields},
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def notice_text(self, template: str, scope: str) -> str:
        return template.format(scope=scope.replace("_", " ", 1))


CATEGORIES: Mapping[str, SettingsCategory] = {
    category.name: category
    for category in (
        SettingsCategory(
            name="pathao",
            model=PathaoSettings,
            key_column="singleton_key",
            fixed_scope=SINGLETON_KEY,
            cache_root="pathaoSettings",
            success_message="Pathao settings updated successfully",
            failure_message="Failed to update Pathao settings",
        ),
        SettingsCategory(
            name="courier_webhook",
            model=CourierWebhookSettings,
            key_column="singleton_key",
            fixed_scope=SINGLETON_KEY,
            newest_first=True,
            cache_root="courierWebhookSettings",
            success_message="Courier webhook settings updated successfully",
            failure_message="Failed to update courier webhook settings",
        ),
        SettingsCategory(
            name="system",
            model=SystemSettings,
            key_column="singleton_key",
            fixed_scope=SINGLETON_KEY,
            cache_root="systemSettings",
            success_message="System settings updated successfully",
            failure_message="Failed to update system settings",
        ),
        SettingsCategory(
            name="business",
            model=BusinessSettings,
            key_column="singleton_key",
            fixed_scope=SINGLETON_KEY,
            cache_root="businessSettings",
            success_message="Business settings updated successfully",
            failure_message="Failed to update business settings",
        ),
        SettingsCategory(
            name="custom",
            model=CustomSetting,
            key_column="setting_type",
            allowed_scopes=CUSTOM_SETTING_TYPES,
            scoped_cache_key=True,
            invalidate_whole_root=True,
            cache_root="customSettings",
            success_message="{scope} saved successfully",
            failure_message="Failed to save {scope}",
        ),
        SettingsCategory(
            name="user_preferences",
            model=UserPreferences,
            key_column="user_id",
            scoped_cache_key=True,
            cache_root="userPreferences",
            success_message="Preferences updated successfully",
            failure_message="Failed to update preferences",
        ),
    )
}

SINGLETON_CATEGORIES = tuple(
    name for name, category in CATEGORIES.items() if category.fixed_scope is not None
)


def get_category(name: str) -> SettingsCategory:
    """
    Look up a settings category by name.

    Raises:
        ValidationException: If the category is not registered
    """
    try:
        return CATEGORIES[name]
    except KeyError:
        raise ValidationException(
            f"Unknown settings category '{name}'",
            SettingsErrorCode.UNKNOWN_CATEGORY,
            details={"category": name, "known": sorted(CATEGORIES)},
        ) from None


__all__ = [
    "CATEGORIES",
    "CUSTOM_SETTING_TYPES",
    "SINGLETON_CATEGORIES",
    "QueryKey",
    "SettingsCategory",
    "SettingsRecord",
    "get_category",
]
