"""
Courier status realtime bridge.

Watches the change feed of ``sales`` for rows whose ``courier_status`` is set.
When an update changes the status, the bridge emits a success notice
("Order INV-001 status updated: PENDING → SHIPPED") and invalidates the
``("sales",)`` and ``("sale", <id>)`` queries.

The subscription is supervised: a failed subscribe or a broken delivery
stream is logged, reported once per outage as a warning notice, and retried
with exponential backoff until the bridge is stopped.

States::

    IDLE -> SUBSCRIBING -> ACTIVE <-> RECONNECTING
    any state -> TORN_DOWN (stop)
"""

from __future__ import annotations

import asyncio
from enum import StrEnum
from typing import Awaitable, Callable, Optional

from shopdesk.core.config import settings
from shopdesk.core.error_codes import RealtimeErrorCode
from shopdesk.core.exceptions import RealtimeException
from shopdesk.core.logger import get_logger
from shopdesk.services.notice_service import NoticeService
from shopdesk.stores.change_feed import ChangeFeed, FeedSubscription, RowChange
from shopdesk.stores.query_cache import QueryCache

logger = get_logger(__name__)

WATCHED_TABLE = "sales"
WATCHED_COLUMN = "courier_status"
STATUS_NOTICE_DURATION_MS = 5000
OUTAGE_NOTICE = "Live courier updates interrupted, reconnecting"


class BridgeState(StrEnum):
    IDLE = "idle"
    SUBSCRIBING = "subscribing"
    ACTIVE = "active"
    RECONNECTING = "reconnecting"
    TORN_DOWN = "torn_down"


def describe_status_change(change: RowChange) -> Optional[tuple[str, str]]:
    """
    Return ``(message, description)`` for a courier status transition.

    ``None`` when the change is not an update of a non-null status to a
    different value.
    """
    if change.type != "UPDATE":
        return None
    new_status = change.new.get(WATCHED_COLUMN)
    old_status = change.old.get(WATCHED_COLUMN)
    if new_status is None or new_status == old_status:
        return None
    message = (
        f"Order {change.new.get('invoice_number')} status updated: "
        f"{old_status or 'PENDING'} → {new_status}"
    )
    return message, f"Customer: {change.new.get('customer_name')}"


class CourierStatusBridge:
    """Supervised subscription turning courier status changes into notices."""

    def __init__(
        self,
        feed: ChangeFeed,
        cache: QueryCache,
        notices: NoticeService,
        initial_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        teardown_timeout: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._feed = feed
        self._cache = cache
        self._notices = notices
        self._initial_delay = initial_delay or settings.realtime__reconnect_initial_delay
        self._max_delay = max_delay or settings.realtime__reconnect_max_delay
        self._teardown_timeout = (
            teardown_timeout or settings.realtime__teardown_timeout
        )
        self._sleep = sleep

        self._state = BridgeState.IDLE
        self._task: Optional[asyncio.Task[None]] = None
        self._subscription: Optional[FeedSubscription] = None
        self._subscribing = False
        self._torn_down = False
        self._outage_reported = False

    @property
    def state(self) -> BridgeState:
        return self._state

    def _set_state(self, state: BridgeState) -> None:
        if self._torn_down or state == self._state:
            return
        logger.debug("Courier bridge %s -> %s", self._state, state)
        self._state = state

    def start(self) -> asyncio.Task[None]:
        """Spawn the supervised run task; calling it twice returns the same task."""
        if self._torn_down:
            raise RealtimeException(
                "Courier status bridge was already torn down",
                RealtimeErrorCode.SUBSCRIBE_FAILED,
            )
        if self._task is None:
            self._task = asyncio.create_task(
                self._run(), name="courier-status-bridge"
            )
        return self._task

    async def stop(self) -> None:
        """
        Tear the bridge down.

        A subscription still being established is given ``teardown_timeout``
        seconds to finish, after which the run loop closes it; past the
        timeout the run task is cancelled.
        """
        if self._torn_down:
            return
        self._torn_down = True
        self._state = BridgeState.TORN_DOWN

        task = self._task
        if task is not None and not task.done():
            if self._subscribing:
                try:
                    await asyncio.wait_for(
                        asyncio.shield(task), timeout=self._teardown_timeout
                    )
                except asyncio.TimeoutError:
                    logger.warning(
                        "Courier bridge subscription did not settle within %.1fs",
                        self._teardown_timeout,
                    )
            if not task.done():
                task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        await self._close_subscription()
        logger.info("Courier status bridge torn down")

    async def handle_change(self, change: RowChange) -> bool:
        """
        React to one change; returns True when a notice was emitted.

        Changes arriving after teardown are dropped.
        """
        if self._torn_down:
            return False
        described = describe_status_change(change)
        if described is None:
            return False

        message, description = described
        await self._notices.success(
            message, description=description, duration_ms=STATUS_NOTICE_DURATION_MS
        )
        await self._cache.invalidate(("sales",), ("sale", change.new.get("id")))
        return True

    async def _close_subscription(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            await subscription.close()

    async def _report_outage(self, exc: Exception) -> None:
        logger.warning("Courier status feed unavailable: %s", exc)
        if not self._outage_reported and not self._torn_down:
            self._outage_reported = True
            await self._notices.warning(OUTAGE_NOTICE)

    async def _run(self) -> None:
        delay = self._initial_delay
        while not self._torn_down:
            self._set_state(
                BridgeState.SUBSCRIBING
                if self._state == BridgeState.IDLE
                else BridgeState.RECONNECTING
            )

            self._subscribing = True
            try:
                subscription = await self._feed.subscribe(
                    WATCHED_TABLE, not_null=WATCHED_COLUMN
                )
            except RealtimeException as exc:
                await self._report_outage(exc)
                if self._torn_down:
                    return
                await self._sleep(delay)
                delay = min(delay * 2, self._max_delay)
                continue
            finally:
                self._subscribing = False

            if self._torn_down:
                await subscription.close()
                return

            self._subscription = subscription
            self._set_state(BridgeState.ACTIVE)
            if self._outage_reported:
                logger.info("Courier status feed restored")
            self._outage_reported = False
            delay = self._initial_delay

            try:
                async for change in subscription:
                    if self._torn_down:
                        break
                    await self.handle_change(change)
                else:
                    if not self._torn_down:
                        raise RealtimeException(
                            "Change feed stream ended",
                            RealtimeErrorCode.DELIVERY_FAILED,
                        )
            except RealtimeException as exc:
                await self._close_subscription()
                self._set_state(BridgeState.RECONNECTING)
                await self._report_outage(exc)
                if self._torn_down:
                    return
                await self._sleep(delay)
                delay = min(delay * 2, self._max_delay)


__all__ = [
    "BridgeState",
    "CourierStatusBridge",
    "OUTAGE_NOTICE",
    "describe_status_change",
]
