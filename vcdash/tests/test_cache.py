from __future__ import annotations

import json

from vcdash.cache import (
    COVERAGE_CACHE,
    QUALIFIED_COUNT_CACHE,
    SYNC_EVENT,
    CacheService,
    MemoryStorage,
    SqlStorage,
    SyncChannel,
    TTLCache,
    default_cache_service,
)


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class BrokenStorage:
    def get_item(self, key):
        raise OSError("disk gone")

    def set_item(self, key, value):
        raise OSError("disk gone")

    def remove_item(self, key):
        raise OSError("disk gone")


class TestTTLCache:
    def test_hit_within_ttl(self):
        clock = FakeClock()
        cache = TTLCache(MemoryStorage(), "k", ttl=60, clock=clock)
        cache.set({"rows": [1, 2]})
        clock.now += 60
        assert cache.get() == {"rows": [1, 2]}

    def test_expired_entry_removed(self):
        clock = FakeClock()
        storage = MemoryStorage()
        cache = TTLCache(storage, "k", ttl=60, clock=clock)
        cache.set([1])
        clock.now += 61
        assert cache.get() is None
        assert storage.get_item("k") is None

    def test_envelope_layout(self):
        storage = MemoryStorage()
        TTLCache(storage, "k", ttl=1, clock=FakeClock(5.0)).set("x")
        assert json.loads(storage.get_item("k")) == {"data": "x", "timestamp": 5.0}

    def test_corrupt_envelope_is_a_miss(self):
        storage = MemoryStorage()
        storage.set_item("k", "{not json")
        assert TTLCache(storage, "k", ttl=60).get() is None
        storage.set_item("k", json.dumps({"data": 1}))
        assert TTLCache(storage, "k", ttl=60).get() is None

    def test_storage_errors_swallowed(self):
        cache = TTLCache(BrokenStorage(), "k", ttl=60)
        cache.set([1])
        cache.clear()
        assert cache.get() is None


class TestSqlStorage:
    def test_round_trip_through_store(self, store):
        storage = SqlStorage(store)
        storage.set_item("count", '{"data": 3}')
        assert storage.get_item("count") == '{"data": 3}'
        assert store.keys() == ["cache:count"]
        storage.remove_item("count")
        assert storage.get_item("count") is None


class TestSyncChannel:
    def test_failing_subscriber_does_not_block_others(self):
        channel = SyncChannel()
        seen = []

        def broken(event, payload):
            raise RuntimeError("boom")

        channel.subscribe(broken)
        channel.subscribe(lambda e, p: seen.append((e, p)))
        channel.publish("sync", ["a"])
        assert seen == [("sync", ["a"])]

    def test_unsubscribe(self):
        channel = SyncChannel()
        seen = []
        unsubscribe = channel.subscribe(lambda e, p: seen.append(e))
        unsubscribe()
        unsubscribe()
        channel.publish("sync")
        assert seen == []


class TestCacheService:
    def test_register_is_idempotent(self):
        service = CacheService()
        assert service.register("a", 10) is service.register("a", 99)
        assert service.names == ["a"]

    def test_sync_clears_and_broadcasts(self):
        service = CacheService()
        service.register("a", 10).set(1)
        service.register("b", 10).set(2)
        events = []
        service.channel.subscribe(lambda e, p: events.append((e, p)))
        assert service.sync() == ["a", "b"]
        assert service.get("a").get() is None
        assert service.get("b").get() is None
        assert events == [(SYNC_EVENT, ["a", "b"])]

    def test_default_service(self, store):
        clock = FakeClock()
        service = default_cache_service(store, session_ttl=10, qualified_ttl=100, clock=clock)
        service.get(COVERAGE_CACHE).set([1])
        service.get(QUALIFIED_COUNT_CACHE).set(1234)
        assert store.keys() == ["cache:" + QUALIFIED_COUNT_CACHE]
        clock.now += 50
        assert service.get(COVERAGE_CACHE).get() is None
        assert service.get(QUALIFIED_COUNT_CACHE).get() == 1234
