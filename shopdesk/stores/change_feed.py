"""
Change Feed

Row-change notifications carried over Redis pub/sub. Writers publish a
``RowChange`` after committing; subscribers receive the changes of one table,
optionally restricted to rows where a column is not null.

Channel layout: ``<realtime__channel_prefix>:<table>``.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Literal, Optional

from pydantic import BaseModel, Field, ValidationError
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from shopdesk.core.config import settings
from shopdesk.core.error_codes import RealtimeErrorCode
from shopdesk.core.exceptions import RealtimeException, RedisException
from shopdesk.core.logger import get_logger
from shopdesk.stores.redis_client import RedisClient, get_redis_client

logger = get_logger(__name__)


class RowChange(BaseModel):
    """Before/after image of a row, delivered on the change feed."""

    table: str
    type: Literal["INSERT", "UPDATE", "DELETE"]
    old: Dict[str, Any] = Field(default_factory=dict)
    new: Dict[str, Any] = Field(default_factory=dict)
    commit_timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class FeedSubscription:
    """An established subscription to one table's channel."""

    def __init__(
        self, pubsub: PubSub, channel: str, table: str, not_null: Optional[str]
    ) -> None:
        self._pubsub = pubsub
        self.channel = channel
        self.table = table
        self.not_null = not_null
        self.closed = False

    def _accepts(self, change: RowChange) -> bool:
        if change.table != self.table:
            return False
        return self.not_null is None or change.new.get(self.not_null) is not None

    async def __aiter__(self) -> AsyncIterator[RowChange]:
        """
        Yield matching changes until the subscription is closed.

        Raises:
            RealtimeException: When the underlying connection fails
        """
        try:
            async for message in self._pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    change = RowChange.model_validate_json(message["data"])
                except ValidationError as exc:
                    logger.warning(
                        "Discarding malformed change on %s: %s", self.channel, exc
                    )
                    continue
                if self._accepts(change):
                    yield change
        except (RedisError, OSError) as exc:
            if self.closed:
                return
            raise RealtimeException.wrap(
                exc,
                f"Change feed delivery failed on {self.channel}",
                RealtimeErrorCode.DELIVERY_FAILED,
                channel=self.channel,
            ) from exc

    async def close(self) -> None:
        """Unsubscribe and release the connection; safe to call twice."""
        if self.closed:
            return
        self.closed = True
        try:
            await self._pubsub.unsubscribe(self.channel)
        except (RedisError, OSError) as exc:
            logger.debug("Unsubscribe from %s failed: %s", self.channel, exc)
        finally:
            await self._pubsub.aclose()
        logger.info("Change feed subscription closed: %s", self.channel)


class ChangeFeed:
    """Publish and subscribe row changes per table."""

    def __init__(
        self, redis_client: RedisClient, channel_prefix: Optional[str] = None
    ) -> None:
        self._redis = redis_client
        self._prefix = channel_prefix or settings.realtime__channel_prefix

    def channel(self, table: str) -> str:
        return f"{self._prefix}:{table}"

    async def publish(self, change: RowChange) -> int:
        """
        Publish a change, returning the number of receiving subscribers.

        Raises:
            RealtimeException: If Redis rejects the publish
        """
        channel = self.channel(change.table)
        try:
            return await self._redis.publish(channel, change.model_dump_json())
        except (RedisError, RedisException, OSError) as exc:
            logger.error("Failed to publish change on %s: %s", channel, exc)
            raise RealtimeException.wrap(
                exc,
                f"Failed to publish change on {channel}",
                RealtimeErrorCode.PUBLISH_FAILED,
                channel=channel,
            ) from exc

    async def subscribe(
        self, table: str, not_null: Optional[str] = None
    ) -> FeedSubscription:
        """
        Subscribe to the changes of ``table``.

        Args:
            table: Table whose changes are delivered
            not_null: Only deliver changes whose new row has this column set

        Raises:
            RealtimeException: If the subscription cannot be established
        """
        channel = self.channel(table)
        pubsub: Optional[PubSub] = None
        try:
            pubsub = await self._redis.pubsub()
            await pubsub.subscribe(channel)
        except asyncio.CancelledError:
            if pubsub is not None:
                await pubsub.aclose()
            raise
        except (RedisError, RedisException, OSError) as exc:
            if pubsub is not None:
                await pubsub.aclose()
            logger.error("Failed to subscribe to %s: %s", channel, exc)
            raise RealtimeException.wrap(
                exc,
                f"Failed to subscribe to {channel}",
                RealtimeErrorCode.SUBSCRIBE_FAILED,
                channel=channel,
            ) from exc

        logger.info("Subscribed to change feed %s", channel)
        return FeedSubscription(pubsub, channel, table, not_null)


_default_feed: Optional[ChangeFeed] = None


def get_change_feed() -> ChangeFeed:
    """Return the process-wide change feed bound to the shared Redis client."""
    global _default_feed
    if _default_feed is None:
        _default_feed = ChangeFeed(get_redis_client())
    return _default_feed


__all__ = ["ChangeFeed", "FeedSubscription", "RowChange", "get_change_feed"]
