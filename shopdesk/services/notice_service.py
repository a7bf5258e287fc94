"""
Notice service.

User-visible notices (the server-side equivalent of toasts): every mutation
reports its outcome here. Notices are published on a Redis channel for live
clients and kept in a capped history list for late ones. Delivery is
best-effort; a notice never fails the operation it reports.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import AsyncGenerator, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError
from redis.exceptions import RedisError

from shopdesk.core.config import settings
from shopdesk.core.exceptions import RedisException
from shopdesk.core.logger import get_logger
from shopdesk.stores.redis_client import RedisClient, get_redis_client

logger = get_logger(__name__)

NoticeLevel = Literal["success", "error", "info", "warning"]


class Notice(BaseModel):
    """A transient, dismissible message for the user."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    level: NoticeLevel
    message: str
    description: Optional[str] = None
    duration_ms: int
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class NoticeService:
    """Publish notices and read back the recent ones."""

    def __init__(
        self,
        redis_client: RedisClient,
        channel: Optional[str] = None,
        history_key: Optional[str] = None,
        history_size: Optional[int] = None,
    ) -> None:
        self._redis = redis_client
        self.channel = channel or settings.notices__channel
        self._history_key = history_key or settings.notices__history_key
        self._history_size = history_size or settings.notices__history_size

    async def notify(
        self,
        level: NoticeLevel,
        message: str,
        description: Optional[str] = None,
        duration_ms: Optional[int] = None,
    ) -> Notice:
        """Emit a notice; Redis failures are logged and the notice is still returned."""
        notice = Notice(
            level=level,
            message=message,
            description=description,
            duration_ms=(
                duration_ms
                if duration_ms is not None
                else settings.notices__default_duration_ms
            ),
        )
        payload = notice.model_dump_json()
        try:
            await self._redis.lpush(self._history_key, payload)
            await self._redis.ltrim(self._history_key, 0, self._history_size - 1)
            await self._redis.publish(self.channel, payload)
        except (RedisError, RedisException, OSError) as exc:
            logger.warning("Failed to deliver %s notice '%s': %s", level, message, exc)
        else:
            logger.debug("Notice emitted: [%s] %s", level, message)
        return notice

    async def success(
        self,
        message: str,
        description: Optional[str] = None,
        duration_ms: Optional[int] = None,
    ) -> Notice:
        return await self.notify("success", message, description, duration_ms)

    async def error(self, message: str, description: Optional[str] = None) -> Notice:
        return await self.notify("error", message, description)

    async def warning(self, message: str, description: Optional[str] = None) -> Notice:
        return await self.notify("warning", message, description)

    async def recent(self, limit: int = 20) -> List[Notice]:
        """Return up to ``limit`` notices, newest first."""
        raw_items = await self._redis.lrange(self._history_key, 0, max(limit, 1) - 1)
        notices: List[Notice] = []
        for raw in raw_items:
            try:
                notices.append(Notice.model_validate_json(raw))
            except ValidationError as exc:
                logger.warning("Skipping malformed notice in history: %s", exc)
        return notices

    async def stream(self) -> AsyncGenerator[Notice, None]:
        """Yield notices as they are published, until the consumer stops iterating."""
        pubsub = await self._redis.pubsub()
        await pubsub.subscribe(self.channel)
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    yield Notice.model_validate_json(message["data"])
                except ValidationError as exc:
                    logger.warning("Skipping malformed notice on %s: %s", self.channel, exc)
        finally:
            try:
                await pubsub.unsubscribe(self.channel)
            finally:
                await pubsub.aclose()


_default_service: Optional[NoticeService] = None


def get_notice_service() -> NoticeService:
    """Return the process-wide notice service bound to the shared Redis client."""
    global _default_service
    if _default_service is None:
        _default_service = NoticeService(get_redis_client())
    return _default_service


__all__ = ["Notice", "NoticeLevel", "NoticeService", "get_notice_service"]
