import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from shopdesk.core.error_codes import SettingsErrorCode
from shopdesk.core.exceptions import DatabaseException
from shopdesk.models import CourierWebhookSettings, CustomSetting, PathaoSettings
from shopdesk.services.settings_registry import get_category
from shopdesk.stores import database
from shopdesk.stores.settings_store import SettingsStore


def _row_count(engine, model) -> int:
    with engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(model)).scalar_one()


def test_fetch_first_returns_none_when_category_is_empty(db_engine):
    store = SettingsStore()

    assert store.fetch_first(get_category("pathao"), "default") is None


@pytest.mark.parametrize("atomic", [True, False])
def test_first_upsert_inserts_defaults_merged_with_partial(db_engine, atomic):
    store = SettingsStore()
    category = get_category("pathao")

    row = store.upsert(category, "default", {"store_id": 42}, atomic=atomic)

    assert row.id
    assert row.store_id == 42
    assert row.api_base_url == "https://api-hermes.pathao.com"
    assert row.default_delivery_type == 48
    assert row.default_item_type == 2
    assert row.access_token == ""


@pytest.mark.parametrize("atomic", [True, False])
def test_second_upsert_changes_only_supplied_fields(db_engine, atomic):
    store = SettingsStore()
    category = get_category("pathao")

    first = store.upsert(
        category, "default", {"store_id": 1, "access_token": "tok"}, atomic=atomic
    )
    second = store.upsert(category, "default", {"store_id": 2}, atomic=atomic)

    assert second.id == first.id
    assert second.store_id == 2
    assert second.access_token == "tok"
    assert _row_count(db_engine, PathaoSettings) == 1


def test_serialized_atomic_upserts_leave_a_single_row(db_engine):
    store = SettingsStore()
    category = get_category("courier_webhook")

    store.upsert(category, "default", {"webhook_url": "https://a.example"})
    store.upsert(category, "default", {"is_active": True})

    assert _row_count(db_engine, CourierWebhookSettings) == 1
    row = store.fetch_first(category, "default")
    assert row.webhook_url == "https://a.example"
    assert row.is_active is True


def test_empty_partial_still_creates_the_row(db_engine):
    store = SettingsStore()
    category = get_category("business")

    row = store.upsert(category, "default", {})

    assert row.invoice_prefix == "INV"
    assert row.low_stock_alert_quantity == 10


def test_custom_settings_are_independent_per_setting_type(db_engine):
    store = SettingsStore()
    category = get_category("custom")

    store.upsert(category, "custom_css", {"content": "body{}", "is_enabled": True})
    store.upsert(category, "head_snippet", {"content": "<meta>"})

    css = store.fetch_first(category, "custom_css")
    head = store.fetch_first(category, "head_snippet")
    assert css.content == "body{}" and css.is_enabled is True
    assert head.content == "<meta>" and head.is_enabled is False
    assert _row_count(db_engine, CustomSetting) == 2
    assert [row.setting_type for row in store.fetch_all(category)] == [
        "custom_css",
        "head_snippet",
    ]


def test_user_preferences_are_independent_per_user(db_engine):
    store = SettingsStore()
    category = get_category("user_preferences")

    store.upsert(category, "user-a", {"dark_mode": True})
    store.upsert(category, "user-b", {"compact_view": True})

    a = store.fetch_first(category, "user-a")
    b = store.fetch_first(category, "user-b")
    assert (a.dark_mode, a.compact_view) == (True, False)
    assert (b.dark_mode, b.compact_view) == (False, True)


def test_upsert_failure_is_reported_as_settings_upsert_failed(db_engine, monkeypatch):
    store = SettingsStore()

    def broken_upsert(*_args, **_kwargs):
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(store, "_upsert_on_conflict", broken_upsert)

    with pytest.raises(DatabaseException) as exc_info:
        store.upsert(get_category("system"), "default", {"currency_code": "USD"})

    assert exc_info.value.error_code == SettingsErrorCode.UPSERT_FAILED
    assert exc_info.value.http_status == 500


def test_fetch_failure_is_a_typed_error_not_absence(db_engine, monkeypatch):
    def broken_session():
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    monkeypatch.setattr(database, "SessionLocal", broken_session)

    with pytest.raises(DatabaseException):
        SettingsStore().fetch_first(get_category("pathao"), "default")
