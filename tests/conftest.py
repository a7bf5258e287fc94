import asyncio
import json
import os
import re
import tempfile
from typing import Any, Dict, List, Optional

import pytest

# Settings are read at import time; point them at throwaway resources first.
os.environ.setdefault("DATABASE__URL", "sqlite://")
os.environ.setdefault("LOG__DIR", tempfile.mkdtemp(prefix="shopdesk-logs-"))
os.environ.setdefault("LOGFIRE__ENABLED", "false")

from redis.exceptions import ConnectionError as RedisConnectionError  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from shopdesk.stores import database  # noqa: E402
from shopdesk.stores.query_cache import QueryCache  # noqa: E402


def _glob_to_regex(pattern: str) -> "re.Pattern[str]":
    parts = []
    escaped = False
    for ch in pattern:
        if escaped:
            parts.append(re.escape(ch))
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("^" + "".join(parts) + "$")


class FakePubSub:
    def __init__(self, redis: "FakeRedisClient"):
        self._redis = redis
        self.channels: List[str] = []
        self.queue: "asyncio.Queue[Optional[Dict[str, Any]]]" = asyncio.Queue()
        self.closed = False

    async def subscribe(self, channel: str) -> None:
        self.channels.append(channel)
        self._redis.subscribers.setdefault(channel, []).append(self)

    async def unsubscribe(self, channel: str) -> None:
        subscribers = self._redis.subscribers.get(channel, [])
        if self in subscribers:
            subscribers.remove(self)

    async def listen(self):
        while True:
            message = await self.queue.get()
            if message is None:
                return
            yield message

    async def aclose(self) -> None:
        self.closed = True
        self.queue.put_nowait(None)


class FakeRedisClient:
    """In-memory stand-in for ``RedisClient`` covering the operations shopdesk uses."""

    def __init__(self) -> None:
        self.store: Dict[str, str] = {}
        self.lists: Dict[str, List[str]] = {}
        self.published: List[tuple] = []
        self.subscribers: Dict[str, List[FakePubSub]] = {}
        self.ttls: Dict[str, Optional[int]] = {}
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("redis is down")

    async def get(self, key: str) -> Optional[str]:
        self._check()
        return self.store.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        self._check()
        self.store[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed

    async def scan_keys(self, pattern: str, count: int = 500) -> List[str]:
        self._check()
        regex = _glob_to_regex(pattern)
        return [key for key in self.store if regex.match(key)]

    async def set_json(self, key: str, data: Any, ex: Optional[int] = None) -> bool:
        return await self.set(key, json.dumps(data, default=str), ex=ex)

    async def get_json(self, key: str) -> Optional[Any]:
        raw = await self.get(key)
        return json.loads(raw) if raw is not None else None

    async def lpush(self, name: str, *values: str) -> int:
        self._check()
        items = self.lists.setdefault(name, [])
        for value in values:
            items.insert(0, value)
        return len(items)

    async def ltrim(self, name: str, start: int, end: int) -> bool:
        self._check()
        items = self.lists.get(name, [])
        self.lists[name] = items[start : end + 1]
        return True

    async def lrange(self, name: str, start: int = 0, end: int = -1) -> List[str]:
        self._check()
        items = self.lists.get(name, [])
        return items[start:] if end == -1 else items[start : end + 1]

    async def publish(self, channel: str, message: str) -> int:
        self._check()
        self.published.append((channel, message))
        receivers = self.subscribers.get(channel, [])
        for pubsub in receivers:
            pubsub.queue.put_nowait(
                {"type": "message", "channel": channel, "data": message}
            )
        return len(receivers)

    async def pubsub(self) -> FakePubSub:
        self._check()
        return FakePubSub(self)


class RecordingNotices:
    """Notice sink that remembers what would have been shown."""

    def __init__(self) -> None:
        self.items: List[Dict[str, Any]] = []

    async def notify(self, level, message, description=None, duration_ms=None):
        self.items.append(
            {
                "level": level,
                "message": message,
                "description": description,
                "duration_ms": duration_ms,
            }
        )

    async def success(self, message, description=None, duration_ms=None):
        await self.notify("success", message, description, duration_ms)

    async def error(self, message, description=None):
        await self.notify("error", message, description)

    async def warning(self, message, description=None):
        await self.notify("warning", message, description)

    def messages(self, level: Optional[str] = None) -> List[str]:
        return [
            item["message"]
            for item in self.items
            if level is None or item["level"] == level
        ]


class RecordingCache(QueryCache):
    """QueryCache that also records every invalidation request."""

    def __init__(self, redis_client: FakeRedisClient) -> None:
        super().__init__(redis_client, key_prefix="query", ttl_seconds=300)
        self.invalidated: List[tuple] = []

    async def invalidate(self, *keys):
        self.invalidated.extend(tuple(key) for key in keys)
        return await super().invalidate(*keys)


@pytest.fixture
def db_engine(monkeypatch: pytest.MonkeyPatch):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    database.create_tables(bind=engine)
    session_factory = sessionmaker(
        bind=engine, autoflush=False, future=True, expire_on_commit=False
    )
    monkeypatch.setattr(database, "SessionLocal", session_factory)
    yield engine
    engine.dispose()


@pytest.fixture
def fake_redis() -> FakeRedisClient:
    return FakeRedisClient()


@pytest.fixture
def notices() -> RecordingNotices:
    return RecordingNotices()


@pytest.fixture
def cache(fake_redis: FakeRedisClient) -> RecordingCache:
    return RecordingCache(fake_redis)
