import asyncio
import json

import httpx
import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from shopdesk.core.error_codes import (
    APIErrorCode,
    ValidationErrorCode,
    WebhookErrorCode,
)
from shopdesk.core.exceptions import (
    APIException,
    ValidationException,
    WebhookException,
)
from shopdesk.models import CourierStatusLog, Sale
from shopdesk.services.courier_service import (
    CourierService,
    extract_consignment_id,
    normalize_status,
    parse_status_response,
    parse_status_update,
    run_status_refresh_loop,
    payment_status_for,
)
from shopdesk.services.settings_registry import SettingsRecord
from shopdesk.stores.change_feed import ChangeFeed

WEBHOOK = {
    "webhook_url": "https://hooks.example/courier",
    "webhook_name": "n8n courier",
    "status_check_webhook_url": "https://hooks.example/status",
    "is_active": True,
    "auth_username": "relay",
    "auth_password": "secret",
}


class StaticSettings:
    """Settings service returning fixed courier webhook values."""

    def __init__(self, values):
        self.values = values

    async def get(self, category, scope=None):
        return SettingsRecord(
            id="w1", category=category, scope="default", values=self.values
        )


def _add_sale(engine, **fields):
    sale = Sale(invoice_number=fields.pop("invoice_number", "INV-1"), **fields)
    with Session(engine, expire_on_commit=False) as db:
        db.add(sale)
        db.commit()
    return sale


def _reload(engine, sale_id):
    with Session(engine) as db:
        return db.get(Sale, sale_id)


def _service(cache, notices, fake_redis, handler, values=None, sleep=None):
    kwargs = {}
    if sleep is not None:
        kwargs["sleep"] = sleep
    return CourierService(
        StaticSettings(WEBHOOK if values is None else values),
        ChangeFeed(fake_redis, channel_prefix="realtime"),
        cache,
        notices,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def _unreachable(request):
    raise AssertionError(f"unexpected request to {request.url}")


@pytest.mark.parametrize(
    "raw,display",
    [
        ("Pickup Cancelled", "cancelled"),
        ("pickup_cancel", "cancelled"),
        ("In Transit", "in_transit"),
        ("Picked Up", "in_transit"),
        ("out-for-delivery", "out_for_delivery"),
        ("Delivered", "delivered"),
        ("completed", "delivered"),
        ("Returned", "returned"),
        ("Hold", "Hold"),
    ],
)
def test_normalize_status(raw, display):
    assert normalize_status(raw) == display


def test_payment_status_follows_final_courier_states():
    assert payment_status_for("Delivered") == "paid"
    assert payment_status_for("Returned") == "cancelled"
    assert payment_status_for("lost") == "cancelled"
    assert payment_status_for("In Transit") is None


def test_extract_consignment_id_checks_known_fields_in_order():
    assert extract_consignment_id({"trackingId": 77, "orderId": "x"}) == "77"
    assert extract_consignment_id({"consignment_id": "", "order_id": "o-1"}) == "o-1"
    assert extract_consignment_id(["c-1"]) is None


def test_parse_status_response_formats():
    assert parse_status_response(
        [{"type": "success", "data": {"order_status": "Delivered"}}]
    ) == "Delivered"
    assert parse_status_response({"data": {"order_status": "Pending"}}) == "Pending"
    assert parse_status_response({"courier_status": "Returned"}) == "Returned"
    assert parse_status_response([{"type": "error"}]) == "pending"
    assert parse_status_response("gibberish") == "pending"


def test_parse_status_response_tolerates_odd_shapes():
    assert parse_status_response(
        [{"type": "success", "data": [{"order_status": "Delivered"}]}]
    ) == "pending"
    assert parse_status_response({"data": "Delivered", "status": 5}) == "5"
    assert normalize_status(5) == "5"
    assert payment_status_for(7) is None


def test_parse_status_update_accepts_three_formats():
    listed = parse_status_update(
        {"data": [{"consignment_id": "C1", "order_status_slug": "delivered",
                   "order_status": "Delivered"}]}
    )
    nested = parse_status_update({"data": {"consignment_id": "C2", "order_status": "Hold"}})
    flat = parse_status_update(
        {"consignment_id": "C3", "status": "in_transit", "tracking_number": "T3",
         "current_location": "Dhaka hub"}
    )

    assert (listed.consignment_id, listed.status, listed.notes) == (
        "C1", "delivered", "Status: Delivered"
    )
    assert (nested.consignment_id, nested.status) == ("C2", "Hold")
    assert (flat.tracking_number, flat.current_location) == ("T3", "Dhaka hub")


def test_parse_status_update_rejects_bad_payloads():
    with pytest.raises(ValidationException) as unsupported:
        parse_status_update({"event": "ping"})
    with pytest.raises(ValidationException) as missing:
        parse_status_update({"consignment_id": "C1", "status": ""})

    assert unsupported.value.error_code == ValidationErrorCode.INVALID_FORMAT
    assert missing.value.error_code == ValidationErrorCode.MISSING_FIELD


@pytest.mark.asyncio
async def test_send_order_marks_sale_sent(db_engine, cache, notices, fake_redis):
    sale = _add_sale(db_engine, customer_name="Karim")
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"consignment_id": "DL-42"})

    service = _service(cache, notices, fake_redis, handler)

    result = await service.send_order({"sale_id": sale.id, "invoice_number": "INV-1"})

    assert result["success"] is True
    assert result["consignment_id"] == "DL-42"
    assert result["webhook_name"] == "n8n courier"
    assert seen[0].headers["User-Agent"] == "Courier-Webhook-Sender/1.0"
    assert seen[0].headers["Authorization"].startswith("Basic ")
    assert json.loads(seen[0].content)["sale_id"] == sale.id

    stored = _reload(db_engine, sale.id)
    assert (stored.courier_status, stored.consignment_id) == ("sent", "DL-42")
    assert ("sale", sale.id) in cache.invalidated
    assert fake_redis.published[0][0] == "realtime:sales"
    assert notices.messages("success") == ["Order sent to courier service successfully"]


@pytest.mark.asyncio
async def test_send_order_without_auth_credentials(db_engine, cache, notices, fake_redis):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={})

    values = {**WEBHOOK, "auth_username": "  ", "auth_password": "x"}
    service = _service(cache, notices, fake_redis, handler, values=values)

    result = await service.send_order({"invoice_number": "INV-2"})

    assert result["consignment_id"] is None
    assert "Authorization" not in seen[0].headers


@pytest.mark.asyncio
async def test_send_order_rejection_is_reported(cache, notices, fake_redis):
    service = _service(
        cache, notices, fake_redis, lambda request: httpx.Response(422, text="bad phone")
    )

    with pytest.raises(WebhookException) as exc_info:
        await service.send_order({"invoice_number": "INV-3"})

    assert exc_info.value.message == (
        "Webhook Error (422): Failed to send order to courier service"
    )
    assert exc_info.value.details["body"] == "bad phone"
    assert notices.messages("error") == ["Failed to send order to courier service"]


@pytest.mark.asyncio
async def test_send_order_requires_active_webhook(cache, notices, fake_redis):
    service = _service(
        cache, notices, fake_redis, _unreachable, values={**WEBHOOK, "is_active": False}
    )

    with pytest.raises(WebhookException) as exc_info:
        await service.send_order({"invoice_number": "INV-4"})

    assert exc_info.value.error_code == WebhookErrorCode.NOT_CONFIGURED


@pytest.mark.asyncio
async def test_send_order_timeout_maps_to_webhook_timeout(cache, notices, fake_redis):
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    service = _service(cache, notices, fake_redis, handler)

    with pytest.raises(WebhookException) as exc_info:
        await service.send_order({"invoice_number": "INV-5"})

    assert exc_info.value.http_status == 504
    assert notices.messages("error") == ["Failed to send order to courier service"]


@pytest.mark.asyncio
async def test_test_webhook_reports_upstream_response(cache, notices, fake_redis):
    def handler(request):
        body = json.loads(request.content)
        assert body["test"] is True and body["message"] == "Test from shopdesk"
        assert request.headers["User-Agent"] == "Test-Function/1.0"
        return httpx.Response(503, text="down", headers={"X-Relay": "n8n"})

    service = _service(cache, notices, fake_redis, handler)

    result = await service.test_webhook()

    assert result["success"] is False
    assert result["status"] == 503
    assert result["response"] == "down"
    assert result["headers"]["x-relay"] == "n8n"


@pytest.mark.asyncio
async def test_check_status_posts_status_request(cache, notices, fake_redis):
    def handler(request):
        assert json.loads(request.content) == {
            "action": "check_status",
            "consignment_id": "DL-1",
            "type": "status_check",
        }
        return httpx.Response(200, json={"order_status": "Delivered"})

    service = _service(cache, notices, fake_redis, handler)

    result = await service.check_status("DL-1")

    assert result["message"] == "Status check completed successfully"
    assert result["webhook_response"] == {"order_status": "Delivered"}

    with pytest.raises(ValidationException):
        await service.check_status("")


@pytest.mark.asyncio
async def test_apply_status_update_records_log(db_engine, cache, notices, fake_redis):
    sale = _add_sale(db_engine, consignment_id="DL-9", courier_status="sent")
    service = _service(cache, notices, fake_redis, _unreachable)

    result = await service.apply_status_update(
        {"consignment_id": "DL-9", "status": "Delivered", "current_location": "Gulshan",
         "notes": "left with guard"}
    )

    assert result["old_status"] == "sent"
    assert result["new_status"] == "Delivered"
    stored = _reload(db_engine, sale.id)
    assert stored.courier_status == "delivered"
    assert stored.order_status == "Delivered"
    assert stored.payment_status == "paid"
    assert stored.current_location == "Gulshan"
    assert stored.courier_notes == "left with guard"
    assert stored.last_status_check is not None

    with Session(db_engine) as db:
        log = db.execute(select(CourierStatusLog)).scalar_one()
    assert (log.old_status, log.new_status, log.source) == ("sent", "Delivered", "webhook")
    assert cache.invalidated == [("sales",), ("sale", sale.id)]
    assert fake_redis.published[0][0] == "realtime:sales"


@pytest.mark.asyncio
async def test_apply_status_update_for_unknown_consignment(db_engine, cache, notices, fake_redis):
    service = _service(cache, notices, fake_redis, _unreachable)

    with pytest.raises(APIException) as exc_info:
        await service.apply_status_update({"consignment_id": "nope", "status": "Delivered"})

    assert exc_info.value.error_code == APIErrorCode.NOT_FOUND
    assert exc_info.value.message == "No sale found for consignment ID: nope"


@pytest.mark.asyncio
async def test_refresh_statuses_counts_each_outcome(db_engine, cache, notices, fake_redis):
    ok = _add_sale(db_engine, invoice_number="INV-10", consignment_id="DL-10")
    broken = _add_sale(db_engine, invoice_number="INV-11", consignment_id="DL-11")
    _add_sale(db_engine, invoice_number="INV-12", consignment_id="DL-12",
              courier_status="delivered")
    _add_sale(db_engine, invoice_number="INV-13")
    sleeps = []

    def handler(request):
        assert request.method == "GET"
        if request.url.params["consignment_id"] == "DL-10":
            return httpx.Response(
                200, json=[{"type": "success", "data": {"order_status": "Delivered"}}]
            )
        return httpx.Response(500, text="upstream error")

    async def fake_sleep(delay):
        sleeps.append(delay)

    service = _service(cache, notices, fake_redis, handler, sleep=fake_sleep)

    summary = await service.refresh_statuses()

    assert summary == {"checked": 2, "updated": 1, "failed": 1}
    assert len(sleeps) == 1
    assert _reload(db_engine, ok.id).courier_status == "delivered"
    assert _reload(db_engine, ok.id).payment_status == "paid"
    assert _reload(db_engine, broken.id).courier_status is None
    assert cache.invalidated[-1] == ("sales",)


@pytest.mark.asyncio
async def test_refresh_statuses_without_status_url_is_a_no_op(cache, notices, fake_redis):
    service = _service(
        cache,
        notices,
        fake_redis,
        _unreachable,
        values={**WEBHOOK, "status_check_webhook_url": ""},
    )

    assert await service.refresh_statuses() == {"checked": 0, "updated": 0, "failed": 0}


@pytest.mark.asyncio
async def test_refresh_statuses_skips_sales_that_break(
    db_engine, cache, notices, fake_redis, monkeypatch
):
    odd = _add_sale(db_engine, invoice_number="INV-20", consignment_id="DL-20")
    broken = _add_sale(db_engine, invoice_number="INV-21", consignment_id="DL-21")

    def handler(request):
        return httpx.Response(
            200, json=[{"type": "success", "data": [{"order_status": "Delivered"}]}]
        )

    async def fake_sleep(delay):
        pass

    service = _service(cache, notices, fake_redis, handler, sleep=fake_sleep)
    update = service.sales.update_courier_fields

    def update_or_fail(sale_id, changes):
        if sale_id == broken.id:
            raise RuntimeError("row vanished")
        return update(sale_id, changes)

    monkeypatch.setattr(service.sales, "update_courier_fields", update_or_fail)

    summary = await service.refresh_statuses()

    assert summary == {"checked": 2, "updated": 1, "failed": 1}
    assert _reload(db_engine, odd.id).courier_status == "pending"


@pytest.mark.asyncio
async def test_refresh_loop_survives_unexpected_errors():
    passes = []

    class FlakyService:
        async def refresh_statuses(self):
            passes.append(len(passes))
            if len(passes) == 1:
                raise RuntimeError("boom")
            return {"checked": 0, "updated": 0, "failed": 0}

    async def fake_sleep(delay):
        if len(passes) >= 2:
            raise asyncio.CancelledError

    with pytest.raises(asyncio.CancelledError):
        await run_status_refresh_loop(FlakyService(), interval=1, sleep=fake_sleep)

    assert passes == [0, 1]
