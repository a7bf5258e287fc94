import pytest

from shopdesk.stores.query_cache import QueryCache


@pytest.mark.asyncio
async def test_invalidate_drops_key_and_its_extensions_only(fake_redis):
    cache = QueryCache(fake_redis, key_prefix="query", ttl_seconds=60)
    for key in (("sales",), ("sales", "page-2"), ("salesItems",), ("sale", "1")):
        await cache.get_or_fetch(key, _const(list(key)))

    removed = await cache.invalidate(("sales",))

    assert removed == 2
    assert sorted(fake_redis.store) == ["query:sale:1", "query:salesItems"]


@pytest.mark.asyncio
async def test_get_or_fetch_caches_with_ttl(fake_redis):
    cache = QueryCache(fake_redis, key_prefix="query", ttl_seconds=60)
    calls = []

    async def fetch():
        calls.append(1)
        return {"total": 3}

    assert await cache.get_or_fetch(("sales",), fetch) == {"total": 3}
    assert await cache.get_or_fetch(("sales",), fetch) == {"total": 3}
    assert len(calls) == 1
    assert fake_redis.ttls["query:sales"] == 60


@pytest.mark.asyncio
async def test_cached_false_is_a_hit(fake_redis):
    cache = QueryCache(fake_redis, key_prefix="query", ttl_seconds=60)
    await cache.get_or_fetch(("firstTimeSetup",), _const(False))

    async def must_not_run():
        raise AssertionError("fetcher called on cache hit")

    assert await cache.get_or_fetch(("firstTimeSetup",), must_not_run) is False


@pytest.mark.asyncio
async def test_redis_outage_falls_back_to_fetcher(fake_redis):
    cache = QueryCache(fake_redis, key_prefix="query", ttl_seconds=60)
    fake_redis.fail = True

    assert await cache.get_or_fetch(("sales",), _const([1, 2])) == [1, 2]
    assert await cache.invalidate(("sales",)) == 0


def test_render_key_rejects_empty_key(fake_redis):
    cache = QueryCache(fake_redis, key_prefix="query", ttl_seconds=60)

    assert cache.render_key(("sale", 7)) == "query:sale:7"
    with pytest.raises(ValueError):
        cache.render_key(())


def _const(value):
    async def fetch():
        return value

    return fetch
