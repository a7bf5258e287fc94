"""Notice endpoints: recent history and a live WebSocket stream."""

from typing import List

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from shopdesk.api.v1.converters import convert_notice_to_response
from shopdesk.api.v1.schemas.responses import NoticeResponse
from shopdesk.core.logger import get_logger
from shopdesk.services.notice_service import NoticeService, get_notice_service

logger = get_logger(__name__)

router = APIRouter(prefix="/notices", tags=["notices"])


@router.get("", response_model=List[NoticeResponse])
async def list_notices(
    limit: int = Query(20, ge=1, le=100),
    service: NoticeService = Depends(get_notice_service),
) -> List[NoticeResponse]:
    notices = await service.recent(limit)
    return [convert_notice_to_response(notice) for notice in notices]


@router.websocket("/ws")
async def stream_notices(
    websocket: WebSocket,
    service: NoticeService = Depends(get_notice_service),
) -> None:
    await websocket.accept()
    stream = service.stream()
    try:
        async for notice in stream:
            await websocket.send_text(notice.model_dump_json())
    except WebSocketDisconnect:
        logger.debug("Notice stream client disconnected")
    finally:
        await stream.aclose()


__all__ = ["router"]
