"""Tests for the cache adapter and its stores."""

import pytest

from embed_pipeline.cache import CacheAdapter, FileStore, MemoryStore, get_default_cache
from embed_pipeline.exceptions import StoreError


class Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class SyncStore:
    """Store with plain (non-async) methods."""

    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value


@pytest.mark.asyncio
async def test_set_stamps_timestamp():
    store = MemoryStore()
    cache = CacheAdapter(store, clock=Clock(42.0))

    await cache.set("image#x", {"dimensions": {"width": 1, "height": 2}})

    assert await store.get("image#x") == {"dimensions": {"width": 1, "height": 2}, "timestamp": 42.0}


@pytest.mark.asyncio
async def test_ttl_expiry():
    clock = Clock()
    cache = CacheAdapter(MemoryStore(), ttl=60, clock=clock)
    await cache.set("k", {"v": 1})

    clock.now += 60
    assert await cache.get("k") == {"v": 1, "timestamp": 1000.0}

    clock.now += 1
    assert await cache.get("k") is None
    # per-call ttl overrides the adapter default
    assert await cache.get("k", ttl=3600) is not None


@pytest.mark.asyncio
async def test_missing_key():
    assert await CacheAdapter(MemoryStore()).get("nope") is None


@pytest.mark.asyncio
async def test_sync_store():
    store = SyncStore()
    cache = CacheAdapter(store, ttl=10, clock=Clock())

    await cache.set("k", {"v": 1})

    assert store.data["k"]["v"] == 1
    assert (await cache.get("k"))["v"] == 1


@pytest.mark.asyncio
async def test_store_errors_are_wrapped():
    class BrokenStore:
        def get(self, key):
            raise ConnectionError("redis down")

        def set(self, key, value):
            raise ConnectionError("redis down")

    cache = CacheAdapter(BrokenStore())

    with pytest.raises(StoreError) as excinfo:
        await cache.get("k")
    assert excinfo.value.key == "k"
    assert isinstance(excinfo.value.__cause__, ConnectionError)

    with pytest.raises(StoreError, match="Cache write failed"):
        await cache.set("k", {})


@pytest.mark.asyncio
async def test_file_store(tmp_path):
    store = FileStore(tmp_path / "cache")
    cache = CacheAdapter(store, ttl=60, clock=Clock())

    await cache.set("image#http://example.com/a.png?x=1", {"dimensions": {"width": 3, "height": 4}})

    assert (await cache.get("image#http://example.com/a.png?x=1"))["dimensions"] == {"width": 3, "height": 4}
    assert await store.get("image#other") is None
    assert store.delete("image#http://example.com/a.png?x=1")
    assert store.clear() == 0


def test_default_cache_is_shared():
    assert get_default_cache() is get_default_cache()


@pytest.mark.asyncio
async def test_file_store_write_is_atomic(tmp_path):
    store = FileStore(tmp_path)
    cache = CacheAdapter(store, clock=Clock())
    await cache.set("k", {"v": 1})

    with pytest.raises(StoreError, match="Cache write failed"):
        await cache.set("k", {"v": object()})

    assert (await cache.get("k"))["v"] == 1
    assert list(tmp_path.glob("*.tmp")) == []
    assert len(list(tmp_path.glob("*.json"))) == 1
