"""Relay of finished invoices to the invoice webhook configured in system settings."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import httpx

from shopdesk.core.logger import get_logger
from shopdesk.services.settings_service import SettingsService, get_settings_service

logger = get_logger(__name__)

MIN_TIMEOUT_SECONDS = 5
MAX_TIMEOUT_SECONDS = 120
DEFAULT_TIMEOUT_SECONDS = 30
TIMEOUT_ERROR = "Webhook timeout - request took too long to respond"


def clamp_timeout(value: Optional[int]) -> int:
    """Webhook timeout in seconds, bounded to 5..120 (30 when unset)."""
    return max(MIN_TIMEOUT_SECONDS, min(MAX_TIMEOUT_SECONDS, value or DEFAULT_TIMEOUT_SECONDS))


class InvoiceWebhookService:
    """
    Best-effort invoice relay.

    ``send`` never raises: a disabled or unconfigured webhook counts as
    success, and delivery failures come back as ``{"success": False, "error": ...}``
    so the sale flow that triggered the relay is not interrupted.
    """

    def __init__(
        self,
        settings_service: SettingsService,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings_service = settings_service
        self._transport = transport

    async def send(self, invoice: Mapping[str, Any]) -> Dict[str, Any]:
        record = await self.settings_service.get("system")
        values = record.values
        url = values.get("invoice_webhook_url")
        if not values.get("invoice_webhook_enabled") or not url:
            logger.debug("Invoice webhook disabled, skipping relay")
            return {"success": True}

        headers = {"Content-Type": "application/json"}
        token = values.get("invoice_webhook_auth_token")
        if token:
            headers["Authorization"] = f"Bearer {token}"
        timeout = clamp_timeout(values.get("invoice_webhook_timeout"))

        try:
            async with httpx.AsyncClient(
                timeout=timeout, transport=self._transport
            ) as client:
                response = await client.post(url, json=dict(invoice), headers=headers)
        except httpx.TimeoutException:
            logger.error("Invoice webhook timed out after %ss", timeout)
            return {"success": False, "error": TIMEOUT_ERROR}
        except httpx.HTTPError as exc:
            logger.error("Invoice webhook error: %s", exc)
            return {"success": False, "error": str(exc) or "Unknown error occurred"}

        if response.is_error:
            error = (
                f"Webhook request failed: {response.status_code} "
                f"{response.reason_phrase} - {response.text}"
            )
            logger.error(error)
            return {"success": False, "error": error}

        logger.info(
            "Invoice %s relayed to webhook", invoice.get("invoice_number", "<unknown>")
        )
        return {"success": True}


_default_service: Optional[InvoiceWebhookService] = None


def get_invoice_webhook_service() -> InvoiceWebhookService:
    global _default_service
    if _default_service is None:
        _default_service = InvoiceWebhookService(get_settings_service())
    return _default_service


__all__ = ["InvoiceWebhookService", "clamp_timeout", "get_invoice_webhook_service"]
