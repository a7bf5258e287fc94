"""
Courier webhook relay.

Sends orders and status checks to the configured courier webhook (usually an
n8n workflow in front of Pathao), applies inbound status updates, and
periodically refreshes the status of undelivered consignments.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

import httpx

from shopdesk.core.config import settings
from shopdesk.core.error_codes import (
    APIErrorCode,
    ValidationErrorCode,
    WebhookErrorCode,
)
from shopdesk.core.exceptions import (
    APIException,
    ApplicationException,
    RealtimeException,
    ValidationException,
    WebhookException,
)
from shopdesk.core.logger import get_logger
from shopdesk.services.notice_service import NoticeService, get_notice_service
from shopdesk.services.settings_service import SettingsService, get_settings_service
from shopdesk.stores.change_feed import ChangeFeed, RowChange, get_change_feed
from shopdesk.stores.query_cache import QueryCache, get_query_cache
from shopdesk.stores.sale_store import SaleStore

logger = get_logger(__name__)

CONSIGNMENT_ID_FIELDS = (
    "consignment_id",
    "consignmentId",
    "tracking_id",
    "trackingId",
    "order_id",
    "orderId",
)


@dataclass(frozen=True)
class StatusUpdate:
    """Inbound courier status update, normalized from any supported format."""

    consignment_id: str
    status: str
    tracking_number: Optional[str] = None
    current_location: Optional[str] = None
    notes: Optional[str] = None


def _slug(status: Any) -> str:
    return re.sub(r"[^a-z0-9]", "_", str(status).lower())


def normalize_status(status: str) -> str:
    """Map a courier-reported status onto the statuses shown in the app."""
    slug = _slug(status)
    if "pickup_cancel" in slug or "cancelled" in slug:
        return "cancelled"
    if "in_transit" in slug or "picked_up" in slug:
        return "in_transit"
    if "out_for_delivery" in slug:
        return "out_for_delivery"
    if "delivered" in slug or "completed" in slug:
        return "delivered"
    if "returned" in slug:
        return "returned"
    return str(status)


def payment_status_for(status: str) -> Optional[str]:
    """Payment status implied by a courier status, if any."""
    slug = _slug(status)
    if "delivered" in slug or "completed" in slug:
        return "paid"
    if any(word in slug for word in ("returned", "lost", "cancelled", "pickup_cancel")):
        return "cancelled"
    return None


def extract_consignment_id(result: Any) -> Optional[str]:
    if not isinstance(result, dict):
        return None
    for name in CONSIGNMENT_ID_FIELDS:
        value = result.get(name)
        if value:
            return str(value)
    return None


def parse_status_response(result: Any) -> str:
    """Read the order status out of a status-check webhook response."""
    if isinstance(result, list):
        first = result[0] if result else None
        if isinstance(first, dict) and first.get("type") == "success":
            data = first.get("data")
            if isinstance(data, dict) and data.get("order_status"):
                return str(data["order_status"])
        return "pending"
    if not isinstance(result, dict):
        return "pending"
    data = result.get("data")
    if isinstance(data, dict) and data.get("order_status"):
        return str(data["order_status"])
    for name in ("order_status", "status", "courier_status"):
        if result.get(name):
            return str(result[name])
    return "pending"


def parse_status_update(payload: Mapping[str, Any]) -> StatusUpdate:
    """
    Accept ``{"data": [{...}]}``, ``{"data": {"consignment_id": ...}}`` or a
    flat ``{"consignment_id": ..., "status": ...}`` payload.

    Raises:
        ValidationException: Unsupported format or missing fields
    """
    data = payload.get("data")
    if isinstance(data, list) and data and isinstance(data[0], dict):
        item = data[0]
    elif isinstance(data, dict) and data.get("consignment_id"):
        item = data
    elif payload.get("consignment_id"):
        item = None
    else:
        raise ValidationException(
            "Unsupported webhook payload format", ValidationErrorCode.INVALID_FORMAT
        )

    if item is not None:
        consignment_id = item.get("consignment_id")
        status = item.get("order_status_slug") or item.get("order_status") or "pending"
        update = StatusUpdate(
            consignment_id=str(consignment_id or ""),
            status=str(status),
            notes=f"Status: {item.get('order_status')}",
        )
    else:
        update = StatusUpdate(
            consignment_id=str(payload.get("consignment_id") or ""),
            status=str(payload.get("status") or ""),
            tracking_number=payload.get("tracking_number"),
            current_location=payload.get("current_location"),
            notes=payload.get("notes"),
        )

    if not update.consignment_id or not update.status:
        raise ValidationException(
            "Missing required fields: consignment_id and status",
            ValidationErrorCode.MISSING_FIELD,
        )
    return update


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class CourierService:
    """Outbound courier webhook calls and inbound status handling."""

    def __init__(
        self,
        settings_service: SettingsService,
        feed: ChangeFeed,
        cache: QueryCache,
        notices: NoticeService,
        sales: Optional[SaleStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.settings_service = settings_service
        self.feed = feed
        self.cache = cache
        self.notices = notices
        self.sales = sales or SaleStore()
        self._transport = transport
        self._sleep = sleep

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=settings.courier__request_timeout, transport=self._transport
        )

    async def _webhook_settings(self, require_active: bool = False) -> Dict[str, Any]:
        record = await self.settings_service.get("courier_webhook")
        values = dict(record.values)
        if require_active and not (values.get("is_active") and values.get("webhook_url")):
            raise WebhookException(
                "Courier webhook settings not configured or disabled",
                WebhookErrorCode.NOT_CONFIGURED,
            )
        return values

    @staticmethod
    def _basic_auth(values: Mapping[str, Any]) -> Optional[httpx.BasicAuth]:
        username = (values.get("auth_username") or "").strip()
        password = (values.get("auth_password") or "").strip()
        if username and password:
            return httpx.BasicAuth(values["auth_username"], values["auth_password"])
        return None

    async def _post(
        self, url: str, payload: Any, auth: Optional[httpx.BasicAuth], user_agent: str
    ) -> httpx.Response:
        try:
            async with self._client() as client:
                return await client.post(
                    url,
                    json=payload,
                    auth=auth,
                    headers={"User-Agent": user_agent, "Accept": "application/json"},
                )
        except httpx.TimeoutException as exc:
            logger.error("Courier webhook timed out: %s", exc)
            raise WebhookException(
                "Courier webhook timed out", WebhookErrorCode.TIMEOUT
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Courier webhook unreachable: %s", exc)
            raise WebhookException.wrap(
                exc, "Courier webhook unreachable", WebhookErrorCode.DELIVERY_FAILED
            ) from exc

    async def _publish_sale_change(
        self, before: Dict[str, Any], after: Dict[str, Any]
    ) -> None:
        try:
            await self.feed.publish(
                RowChange(table="sales", type="UPDATE", old=before, new=after)
            )
        except RealtimeException as exc:
            logger.warning("Sale %s change not published: %s", after.get("id"), exc)

    async def test_webhook(self) -> Dict[str, Any]:
        """POST a test payload to the configured courier webhook."""
        values = await self._webhook_settings()
        if not values.get("webhook_url"):
            raise WebhookException(
                "Courier webhook URL is not configured", WebhookErrorCode.NOT_CONFIGURED
            )

        payload = {
            "test": True,
            "message": "Test from shopdesk",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        response = await self._post(
            values["webhook_url"], payload, self._basic_auth(values), "Test-Function/1.0"
        )
        logger.info("Courier webhook test returned %s", response.status_code)
        return {
            "success": response.is_success,
            "status": response.status_code,
            "status_text": response.reason_phrase,
            "response": response.text,
            "headers": dict(response.headers),
        }

    async def send_order(self, order: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Send an order to the courier webhook and mark the sale as sent.

        Raises:
            WebhookException: Not configured, unreachable, or non-2xx response
        """
        values = await self._webhook_settings(require_active=True)
        invoice = order.get("invoice_number")
        logger.info("Sending order %s to courier webhook", invoice)

        try:
            response = await self._post(
                values["webhook_url"],
                dict(order),
                self._basic_auth(values),
                "Courier-Webhook-Sender/1.0",
            )
        except WebhookException:
            await self.notices.error("Failed to send order to courier service")
            raise

        result = _response_body(response)
        if not response.is_success:
            await self.notices.error("Failed to send order to courier service")
            raise WebhookException(
                f"Webhook Error ({response.status_code}): "
                "Failed to send order to courier service",
                WebhookErrorCode.DELIVERY_FAILED,
                details={"status": response.status_code, "body": result},
            )

        consignment_id = extract_consignment_id(result)
        sale_id = order.get("sale_id")
        if sale_id:
            update: Dict[str, Any] = {"courier_status": "sent"}
            if consignment_id:
                update["consignment_id"] = consignment_id
            try:
                before, after = self.sales.update_courier_fields(str(sale_id), update)
            except ApplicationException as exc:
                logger.error("Failed to mark sale %s as sent: %s", sale_id, exc)
            else:
                await self._publish_sale_change(before, after)
                await self.cache.invalidate(("sales",), ("sale", str(sale_id)))

        await self.notices.success("Order sent to courier service successfully")
        return {
            "success": True,
            "message": "Order sent to courier service successfully",
            "consignment_id": consignment_id,
            "webhook_response": result,
            "webhook_name": values.get("webhook_name"),
        }

    async def check_status(self, consignment_id: str) -> Dict[str, Any]:
        """Ask the courier webhook for the status of one consignment."""
        if not consignment_id:
            raise ValidationException(
                "consignment_id is required", ValidationErrorCode.MISSING_FIELD
            )
        values = await self._webhook_settings(require_active=True)
        response = await self._post(
            values["webhook_url"],
            {
                "action": "check_status",
                "consignment_id": consignment_id,
                "type": "status_check",
            },
            self._basic_auth(values),
            "Courier-Status-Checker/1.0",
        )
        result = _response_body(response)
        if not response.is_success:
            raise WebhookException(
                f"Status Check Error ({response.status_code}): "
                "Failed to check order status",
                WebhookErrorCode.DELIVERY_FAILED,
                details={"status": response.status_code, "body": result},
            )
        return {
            "success": True,
            "message": "Status check completed successfully",
            "webhook_response": result,
            "webhook_name": values.get("webhook_name"),
        }

    async def apply_status_update(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Apply an inbound courier status webhook to the matching sale.

        Raises:
            ValidationException: Unsupported payload
            APIException: No sale has the consignment id (404)
        """
        update = parse_status_update(payload)
        sale = self.sales.find_by_consignment(update.consignment_id)
        if sale is None:
            raise APIException(
                f"No sale found for consignment ID: {update.consignment_id}",
                APIErrorCode.NOT_FOUND,
            )

        now = datetime.now(timezone.utc)
        values: Dict[str, Any] = {
            "courier_status": normalize_status(update.status),
            "order_status": update.status,
            "last_status_check": now,
        }
        payment_status = payment_status_for(update.status)
        if payment_status:
            values["payment_status"] = payment_status
        if update.tracking_number:
            values["tracking_number"] = update.tracking_number
        if update.current_location:
            values["current_location"] = update.current_location
        if update.notes:
            values["courier_notes"] = update.notes

        before, after = self.sales.update_courier_fields(
            sale.id,
            values,
            status_log={
                "consignment_id": update.consignment_id,
                "old_status": sale.courier_status,
                "new_status": update.status,
                "notes": update.notes,
                "source": "webhook",
            },
        )
        await self._publish_sale_change(before, after)
        await self.cache.invalidate(("sales",), ("sale", sale.id))
        logger.info(
            "Courier status of %s: %s -> %s",
            sale.invoice_number,
            sale.courier_status,
            values["courier_status"],
        )

        return {
            "success": True,
            "message": "Status update processed successfully",
            "sale_id": sale.id,
            "invoice_number": sale.invoice_number,
            "old_status": sale.courier_status,
            "new_status": update.status,
            "timestamp": now.isoformat(),
        }

    async def refresh_statuses(self) -> Dict[str, int]:
        """
        Re-check every undelivered consignment against the status-check webhook.

        Per-sale failures are logged and counted; they never stop the pass.
        """
        values = await self._webhook_settings()
        url = values.get("status_check_webhook_url")
        summary = {"checked": 0, "updated": 0, "failed": 0}
        if not url:
            logger.info("Status refresh skipped: no status check webhook configured")
            return summary

        pending = self.sales.list_pending_delivery()
        auth = self._basic_auth(values)
        delay = settings.courier__status_request_delay

        async with self._client() as client:
            for index, sale in enumerate(pending):
                summary["checked"] += 1
                try:
                    response = await client.get(
                        url,
                        params={"consignment_id": sale.consignment_id},
                        headers={"Accept": "application/json"},
                        auth=auth,
                    )
                    if not response.is_success:
                        logger.warning(
                            "Status check for sale %s returned %s",
                            sale.id,
                            response.status_code,
                        )
                        summary["failed"] += 1
                    else:
                        reported = parse_status_response(response.json())
                        display = normalize_status(reported)
                        changes: Dict[str, Any] = {
                            "courier_status": display,
                            "order_status": display,
                            "last_status_check": datetime.now(timezone.utc),
                        }
                        payment_status = payment_status_for(reported)
                        if payment_status:
                            changes["payment_status"] = payment_status
                        before, after = self.sales.update_courier_fields(
                            sale.id, changes
                        )
                        await self._publish_sale_change(before, after)
                        summary["updated"] += 1
                except Exception as exc:
                    logger.error("Failed to refresh status for sale %s: %s", sale.id, exc)
                    summary["failed"] += 1

                if index < len(pending) - 1 and delay:
                    await self._sleep(delay)

        await self.cache.invalidate(("sales",))
        logger.info(
            "Courier status refresh: %d checked, %d updated, %d failed",
            summary["checked"],
            summary["updated"],
            summary["failed"],
        )
        return summary


async def run_status_refresh_loop(
    service: CourierService,
    interval: Optional[float] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> None:
    """Run ``refresh_statuses`` every ``interval`` seconds until cancelled."""
    interval = interval or settings.courier__status_refresh_interval
    logger.info("Courier status refresh scheduled every %ss", interval)
    while True:
        try:
            await service.refresh_statuses()
        except Exception:
            logger.exception("Courier status refresh pass failed")
        await sleep(interval)


_default_service: Optional[CourierService] = None


def get_courier_service() -> CourierService:
    global _default_service
    if _default_service is None:
        _default_service = CourierService(
            get_settings_service(),
            get_change_feed(),
            get_query_cache(),
            get_notice_service(),
        )
    return _default_service


__all__ = [
    "CourierService",
    "get_courier_service",
    "run_status_refresh_loop",
    "StatusUpdate",
    "extract_consignment_id",
    "normalize_status",
    "parse_status_response",
    "parse_status_update",
    "payment_status_for",
]
