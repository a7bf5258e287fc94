import asyncio
from types import SimpleNamespace

import httpx
import pytest
from fastapi.testclient import TestClient

from shopdesk.api.dependencies import require_user
from shopdesk.api.factory import create_api
from shopdesk.services.courier_service import get_courier_service
from shopdesk.services.import_control_service import (
    ImportControlService,
    get_import_control_service,
)
from shopdesk.services.notice_service import NoticeService, get_notice_service
from shopdesk.services.settings_service import SettingsService, get_settings_service
from shopdesk.services.setup_service import SetupService, get_setup_service
from shopdesk.services.user_admin_service import (
    UserAdminService,
    get_user_admin_service,
)
from shopdesk.stores.auth_client import AuthClient, get_auth_client

SIGNED_IN = {"id": "user-a", "email": "a@shop.example"}


@pytest.fixture
def app(db_engine, cache, notices):
    app = create_api(enable_logfire=False, enable_cors=False)
    app.dependency_overrides[get_settings_service] = lambda: SettingsService(
        cache, notices
    )
    app.dependency_overrides[require_user] = lambda: SIGNED_IN
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    # No context manager: the lifespan workers are not started
    return TestClient(app)


def test_health(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json()["components"]["api"]["status"] == "healthy"
    assert "X-Request-ID" in response.headers


def test_put_then_get_settings(client, notices):
    saved = client.put("/api/v1/settings/pathao", json={"store_id": 5})
    fetched = client.get("/api/v1/settings/pathao")

    assert saved.status_code == 200
    assert saved.json()["exists"] is True
    assert fetched.json()["values"]["store_id"] == 5
    assert fetched.json()["values"]["default_delivery_type"] == 48
    assert notices.messages("success") == ["Pathao settings updated successfully"]


def test_unsaved_category_returns_defaults(client):
    body = client.get("/api/v1/settings/business").json()

    assert body["id"] == ""
    assert body["exists"] is False
    assert body["created_at"] is None
    assert body["values"]["invoice_prefix"] == "INV"


def test_unknown_field_uses_error_envelope(client):
    response = client.put(
        "/api/v1/settings/pathao",
        json={"bogus": 1},
        headers={"X-Request-ID": "req-1"},
    )

    body = response.json()
    assert response.status_code == 400
    assert body["error"]["code"] == "VALIDATION_INVALID_INPUT"
    assert body["request_id"] == "req-1"
    assert body["path"] == "/api/v1/settings/pathao"
    assert response.headers["X-Request-ID"] == "req-1"


def test_invalid_time_format_is_rejected(client):
    response = client.put("/api/v1/settings/system", json={"time_format": "25h"})

    assert response.status_code == 400


def test_unknown_category_is_404(client):
    response = client.get("/api/v1/settings/loyalty")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "SETTINGS_UNKNOWN_CATEGORY"


def test_custom_settings_routes(client):
    saved = client.put(
        "/api/v1/settings/custom/custom_css", json={"content": "body{}", "is_enabled": True}
    )
    listed = client.get("/api/v1/settings/custom")
    rejected = client.get("/api/v1/settings/custom/footer")

    assert saved.json()["scope"] == "custom_css"
    assert [item["scope"] for item in listed.json()] == ["custom_css"]
    assert rejected.status_code == 400


def test_preferences_are_per_user(app, client):
    client.put("/api/v1/preferences/user-a", json={"compact_view": True})

    assert client.get("/api/v1/preferences/user-a").json()["values"]["compact_view"] is True
    assert client.get("/api/v1/preferences/user-b").status_code == 403

    app.dependency_overrides[require_user] = lambda: {"id": "user-b"}
    assert client.get("/api/v1/preferences/user-b").json()["values"]["compact_view"] is False


def test_first_time_setup(app, client, cache):
    roles = SimpleNamespace(role_exists=lambda role: False)
    app.dependency_overrides[get_setup_service] = lambda: SetupService(
        cache, roles=roles, bypass=False
    )

    assert client.get("/api/v1/setup/first-time").json() == {"is_first_time": True}


def test_stop_import_requires_id(app, client, cache, notices):
    app.dependency_overrides[get_import_control_service] = lambda: (
        ImportControlService(cache, notices)
    )

    response = client.post("/functions/v1/stop-import", json={})

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Import log ID is required"


def test_admin_delete_without_header_is_401(app, client):
    app.dependency_overrides[get_user_admin_service] = lambda: UserAdminService(
        SimpleNamespace(), roles=SimpleNamespace()
    )

    response = client.post("/functions/v1/admin-delete-user", json={"userId": "u1"})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_MISSING_CREDENTIALS"


def test_courier_status_check_dispatch(app, client):
    calls = []

    async def check_status(consignment_id):
        calls.append(consignment_id)
        return {"success": True, "message": "Status check completed successfully"}

    async def refresh_statuses():
        calls.append("refresh")
        return {"checked": 2, "updated": 1, "failed": 1}

    app.dependency_overrides[get_courier_service] = lambda: SimpleNamespace(
        check_status=check_status, refresh_statuses=refresh_statuses
    )

    single = client.post("/functions/v1/courier-status-check", json={"consignment_id": "DL-1"})
    refresh = client.post("/functions/v1/courier-status-check")

    assert single.json()["success"] is True
    assert refresh.json() == {
        "success": True,
        "message": "Status refresh completed",
        "checked": 2,
        "updated": 1,
        "failed": 1,
    }
    assert calls == ["DL-1", "refresh"]


def test_recent_notices_endpoint(app, client, fake_redis):
    service = NoticeService(fake_redis, channel="notices", history_key="notices:recent")
    app.dependency_overrides[get_notice_service] = lambda: service
    asyncio.run(service.success("Saved"))
    asyncio.run(service.error("Broken"))

    body = client.get("/api/v1/notices", params={"limit": 1}).json()

    assert [item["message"] for item in body] == ["Broken"]
    assert body[0]["level"] == "error"


def _auth_client(handler):
    return AuthClient(
        base_url="https://auth.example",
        service_role_key="service-key",
        transport=httpx.MockTransport(handler),
    )


def test_settings_require_a_signed_in_user(app, client):
    app.dependency_overrides.pop(require_user)

    saved = client.put("/api/v1/settings/courier_webhook", json={"auth_password": "s3cret"})
    fetched = client.get("/api/v1/settings/courier_webhook")
    preferences = client.get("/api/v1/preferences/user-a")

    assert saved.status_code == 401
    assert saved.json()["error"]["code"] == "AUTH_MISSING_CREDENTIALS"
    assert fetched.status_code == 401
    assert preferences.status_code == 401


def test_rejected_token_is_401(app, client):
    app.dependency_overrides.pop(require_user)
    app.dependency_overrides[get_auth_client] = lambda: _auth_client(
        lambda request: httpx.Response(401, json={"msg": "invalid JWT"})
    )

    response = client.get(
        "/api/v1/settings/pathao", headers={"Authorization": "Bearer expired"}
    )

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_INVALID_CREDENTIALS"


def test_valid_token_reaches_settings(app, client):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"id": "user-a"})

    app.dependency_overrides.pop(require_user)
    app.dependency_overrides[get_auth_client] = lambda: _auth_client(handler)

    response = client.get(
        "/api/v1/settings/pathao", headers={"Authorization": "Bearer good"}
    )

    assert response.status_code == 200
    assert seen[0].url.path == "/auth/v1/user"
    assert seen[0].headers["Authorization"] == "Bearer good"


@pytest.mark.parametrize(
    "path",
    [
        "/functions/v1/test-webhook",
        "/functions/v1/courier-webhook",
        "/functions/v1/courier-status-check",
        "/functions/v1/invoice-webhook",
        "/functions/v1/stop-import",
        "/functions/v1/stop-sync",
    ],
)
def test_function_routes_require_a_signed_in_user(app, client, path):
    app.dependency_overrides.pop(require_user)
    app.dependency_overrides[get_courier_service] = lambda: SimpleNamespace()

    response = client.post(path, json={})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_MISSING_CREDENTIALS"


def test_null_for_required_column_is_rejected(client, notices):
    response = client.put("/api/v1/settings/pathao", json={"access_token": None})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "SETTINGS_NULL_FIELD"
    assert notices.messages("error") == []


def test_null_for_nullable_column_is_accepted(client):
    response = client.put("/api/v1/settings/custom/custom_css", json={"content": None})

    assert response.status_code == 200
    assert response.json()["values"]["content"] is None
