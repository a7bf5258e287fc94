import httpx
import pytest

from shopdesk.services.invoice_webhook_service import (
    TIMEOUT_ERROR,
    InvoiceWebhookService,
    clamp_timeout,
)
from shopdesk.services.settings_registry import SettingsRecord

ENABLED = {
    "invoice_webhook_url": "https://hooks.example/invoice",
    "invoice_webhook_enabled": True,
    "invoice_webhook_auth_token": "tok-1",
    "invoice_webhook_timeout": 10,
}


class StaticSettings:
    def __init__(self, values):
        self.values = values

    async def get(self, category, scope=None):
        return SettingsRecord(category=category, scope="default", values=self.values)


def _service(values, handler):
    return InvoiceWebhookService(
        StaticSettings(values), transport=httpx.MockTransport(handler)
    )


def _unreachable(request):
    raise AssertionError("webhook must not be called")


@pytest.mark.parametrize("value,expected", [(None, 30), (0, 30), (1, 5), (45, 45), (600, 120)])
def test_clamp_timeout(value, expected):
    assert clamp_timeout(value) == expected


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "values",
    [
        {**ENABLED, "invoice_webhook_enabled": False},
        {**ENABLED, "invoice_webhook_url": ""},
    ],
)
async def test_disabled_webhook_counts_as_success(values):
    assert await _service(values, _unreachable).send({"invoice_number": "INV-1"}) == {
        "success": True
    }


@pytest.mark.asyncio
async def test_invoice_is_posted_with_bearer_token():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    result = await _service(ENABLED, handler).send({"invoice_number": "INV-1"})

    assert result == {"success": True}
    assert seen[0].headers["Authorization"] == "Bearer tok-1"
    assert seen[0].url == "https://hooks.example/invoice"


@pytest.mark.asyncio
async def test_no_token_means_no_authorization_header():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(204)

    values = {**ENABLED, "invoice_webhook_auth_token": ""}
    assert (await _service(values, handler).send({}))["success"] is True
    assert "Authorization" not in seen[0].headers


@pytest.mark.asyncio
async def test_timeout_is_reported_not_raised():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    result = await _service(ENABLED, handler).send({"invoice_number": "INV-1"})

    assert result == {"success": False, "error": TIMEOUT_ERROR}


@pytest.mark.asyncio
async def test_error_response_is_described():
    def handler(request):
        return httpx.Response(400, text="missing total")

    result = await _service(ENABLED, handler).send({"invoice_number": "INV-1"})

    assert result == {
        "success": False,
        "error": "Webhook request failed: 400 Bad Request - missing total",
    }


@pytest.mark.asyncio
async def test_connection_error_is_reported_not_raised():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = await _service(ENABLED, handler).send({"invoice_number": "INV-1"})

    assert result == {"success": False, "error": "connection refused"}
