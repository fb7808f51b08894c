import asyncio

from journal_client.cache import QueryCache, keys
from journal_client.core.types import Id


def test_fetch_caches_until_invalidated():
    cache = QueryCache()
    calls = []

    async def loader():
        calls.append(1)
        return len(calls)

    async def run():
        assert await cache.fetch(("entries",), loader) == 1
        assert await cache.fetch(("entries",), loader) == 1
        cache.invalidate(("entries",))
        assert cache.is_stale(("entries",))
        assert await cache.fetch(("entries",), loader) == 2

    asyncio.run(run())
    assert len(calls) == 2


def test_concurrent_fetches_share_one_load():
    cache = QueryCache()
    calls = []

    async def loader():
        calls.append(1)
        await asyncio.sleep(0.01)
        return "value"

    async def run():
        return await asyncio.gather(*(cache.fetch(("k",), loader) for _ in range(5)))

    assert asyncio.run(run()) == ["value"] * 5
    assert len(calls) == 1


def test_invalidate_by_prefix():
    cache = QueryCache()

    async def run():
        await cache.fetch(keys.entries_page(0, 10), lambda: _value("page"))
        await cache.fetch(keys.folder_entries(Id(1)), lambda: _value("folder"))
        await cache.fetch(keys.FOLDERS, lambda: _value("folders"))

    asyncio.run(run())
    affected = cache.invalidate(keys.ENTRIES)
    assert set(affected) == {keys.entries_page(0, 10), keys.folder_entries(Id(1))}
    assert not cache.is_stale(keys.FOLDERS)
    assert cache.peek(keys.entries_page(0, 10)) == "page"


def test_load_racing_invalidation_is_stored_stale():
    cache = QueryCache()

    async def loader():
        cache.invalidate(("k",))
        return "old"

    async def run():
        return await cache.fetch(("k",), loader)

    assert asyncio.run(run()) == "old"
    assert cache.is_stale(("k",))


def test_subscribers_are_notified():
    cache = QueryCache()
    seen = []
    unsubscribe = cache.subscribe(lambda prefix, affected: seen.append(prefix))
    cache.invalidate(keys.TAGS)
    unsubscribe()
    cache.invalidate(keys.FOLDERS)
    assert seen == [keys.TAGS]


def test_tag_keys_ignore_order():
    assert keys.tag_entries(["b", "a", "a"]) == keys.tag_entries(["a", "b"])


async def _value(value):
    return value
