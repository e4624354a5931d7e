"""Advisory TTL caches over a string key/value storage façade.

A cache never raises: storage failures and unreadable envelopes are
logged at debug level and treated as a miss.  ``CacheService`` is built
once at startup and handed to whatever needs it; ``sync()`` clears every
registered cache and tells subscribers through a ``SyncChannel``.
"""
from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Callable, Generic, Protocol, TypeVar

from vcdash.store import LocalStore

log = logging.getLogger(__name__)

T = TypeVar("T")

COVERAGE_CACHE = "attio-coverage-cache"
FUNNEL_CACHE = "attio-deal-funnel-cache"
LPS_CACHE = "attio-lps-cache"
PORTFOLIO_CACHE = "attio-portfolio-cache-v1"
QUALIFIED_COUNT_CACHE = "attio-qualified-count"

SYNC_EVENT = "sync"


# ---------------------------------------------------------------------------
# Storage façades
# ---------------------------------------------------------------------------


class Storage(Protocol):
    def get_item(self, key: str) -> str | None: ...
    def set_item(self, key: str, value: str) -> None: ...
    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Process-lifetime storage, the counterpart of a browser session."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}
        self._lock = threading.Lock()

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)


class SqlStorage:
    """Durable storage in the ``stored_values`` table, namespaced by prefix."""

    def __init__(self, store: LocalStore, prefix: str = "cache:"):
        self.store = store
        self.prefix = prefix

    def get_item(self, key: str) -> str | None:
        value = self.store.get_json(self.prefix + key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        self.store.set_json(self.prefix + key, value)

    def remove_item(self, key: str) -> None:
        self.store.remove(self.prefix + key)


# ---------------------------------------------------------------------------
# TTL cache
# ---------------------------------------------------------------------------


class TTLCache(Generic[T]):
    def __init__(self, storage: Storage, key: str, ttl: float,
                 clock: Callable[[], float] = time.time):
        self.storage = storage
        self.key = key
        self.ttl = ttl
        self.clock = clock

    def get(self) -> T | None:
        try:
            raw = self.storage.get_item(self.key)
            if raw is None:
                return None
            envelope = json.loads(raw)
            if self.clock() - envelope["timestamp"] > self.ttl:
                log.debug("Cache %s expired", self.key)
                self.storage.remove_item(self.key)
                return None
            return envelope["data"]
        except Exception as exc:
            log.debug("Cache %s read failed: %s", self.key, exc)
            return None

    def set(self, data: T) -> None:
        try:
            self.storage.set_item(self.key, json.dumps({"data": data, "timestamp": self.clock()}))
        except Exception as exc:
            log.debug("Cache %s write failed: %s", self.key, exc)

    def clear(self) -> None:
        try:
            self.storage.remove_item(self.key)
        except Exception as exc:
            log.debug("Cache %s clear failed: %s", self.key, exc)


# ---------------------------------------------------------------------------
# Sync broadcast
# ---------------------------------------------------------------------------


class SyncChannel:
    """Tiny observer: subscribers get ``(event, payload)`` in subscription order."""

    def __init__(self) -> None:
        self._subscribers: list[Callable[[str, Any], None]] = []

    def subscribe(self, callback: Callable[[str, Any], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: str, payload: Any = None) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event, payload)
            except Exception:
                log.exception("Sync subscriber %r failed", callback)


class CacheService:
    def __init__(self, session_storage: Storage | None = None,
                 durable_storage: Storage | None = None,
                 clock: Callable[[], float] = time.time):
        self.session_storage = session_storage or MemoryStorage()
        self.durable_storage = durable_storage or self.session_storage
        self.clock = clock
        self.channel = SyncChannel()
        self._caches: dict[str, TTLCache] = {}

    def register(self, key: str, ttl: float, durable: bool = False) -> TTLCache:
        if key in self._caches:
            return self._caches[key]
        storage = self.durable_storage if durable else self.session_storage
        cache: TTLCache = TTLCache(storage, key, ttl, self.clock)
        self._caches[key] = cache
        return cache

    def get(self, key: str) -> TTLCache:
        return self._caches[key]

    @property
    def names(self) -> list[str]:
        return list(self._caches)

    def sync(self) -> list[str]:
        """Clear every registered cache, then broadcast the sync event."""
        cleared = list(self._caches)
        for cache in self._caches.values():
            cache.clear()
        log.info("Cleared %d cache(s)", len(cleared))
        self.channel.publish(SYNC_EVENT, cleared)
        return cleared


def default_cache_service(store: LocalStore | None = None, session_ttl: float = 600.0,
                          qualified_ttl: float = 3600.0,
                          clock: Callable[[], float] = time.time) -> CacheService:
    """Cache service with the dashboard's named caches registered."""
    durable = SqlStorage(store) if store is not None else None
    service = CacheService(durable_storage=durable, clock=clock)
    for key in (COVERAGE_CACHE, FUNNEL_CACHE, LPS_CACHE, PORTFOLIO_CACHE):
        service.register(key, session_ttl)
    service.register(QUALIFIED_COUNT_CACHE, qualified_ttl, durable=True)
    return service
