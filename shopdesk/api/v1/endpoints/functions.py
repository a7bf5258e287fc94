"""
Privileged function endpoints, mounted under ``/functions/v1``.

These are the server-side operations the browser client cannot perform with
its own credentials: stopping imports, deleting users, and talking to the
courier and invoice webhooks. All but the inbound courier status update and
the admin delete (which authenticates the caller itself) require a signed-in
user.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header

from shopdesk.api.dependencies import require_user
from shopdesk.api.v1.schemas.requests import (
    AdminDeleteUserRequest,
    CourierStatusCheckRequest,
    StopImportRequest,
    StopSyncRequest,
)
from shopdesk.services.courier_service import CourierService, get_courier_service
from shopdesk.services.import_control_service import (
    ImportControlService,
    get_import_control_service,
)
from shopdesk.services.invoice_webhook_service import (
    InvoiceWebhookService,
    get_invoice_webhook_service,
)
from shopdesk.services.user_admin_service import (
    UserAdminService,
    get_user_admin_service,
)

router = APIRouter(tags=["functions"])


@router.post("/stop-import", dependencies=[Depends(require_user)])
async def stop_import(
    request: StopImportRequest,
    service: ImportControlService = Depends(get_import_control_service),
) -> Dict[str, Any]:
    return await service.stop_import(request.importLogId)


@router.post("/stop-sync", dependencies=[Depends(require_user)])
async def stop_sync(
    request: StopSyncRequest,
    service: ImportControlService = Depends(get_import_control_service),
) -> Dict[str, Any]:
    return await service.stop_sync(request.syncLogId)


@router.post("/admin-delete-user")
async def admin_delete_user(
    request: AdminDeleteUserRequest,
    authorization: Optional[str] = Header(None),
    service: UserAdminService = Depends(get_user_admin_service),
) -> Dict[str, Any]:
    return await service.delete_user(authorization, request.userId)


@router.post("/test-webhook", dependencies=[Depends(require_user)])
async def test_webhook(
    service: CourierService = Depends(get_courier_service),
) -> Dict[str, Any]:
    return await service.test_webhook()


@router.post("/courier-webhook", dependencies=[Depends(require_user)])
async def send_order_to_courier(
    order: Dict[str, Any] = Body(...),
    service: CourierService = Depends(get_courier_service),
) -> Dict[str, Any]:
    return await service.send_order(order)


@router.post("/courier-status-update")
async def courier_status_update(
    payload: Dict[str, Any] = Body(...),
    service: CourierService = Depends(get_courier_service),
) -> Dict[str, Any]:
    return await service.apply_status_update(payload)


@router.post("/courier-status-check", dependencies=[Depends(require_user)])
async def courier_status_check(
    request: Optional[CourierStatusCheckRequest] = None,
    service: CourierService = Depends(get_courier_service),
) -> Dict[str, Any]:
    """Check one consignment when given, otherwise refresh every pending sale."""
    if request is not None and request.consignment_id:
        return await service.check_status(request.consignment_id)

    summary = await service.refresh_statuses()
    return {"success": True, "message": "Status refresh completed", **summary}


@router.post("/invoice-webhook", dependencies=[Depends(require_user)])
async def relay_invoice(
    invoice: Dict[str, Any] = Body(...),
    service: InvoiceWebhookService = Depends(get_invoice_webhook_service),
) -> Dict[str, Any]:
    return await service.send(invoice)


__all__ = ["router"]
