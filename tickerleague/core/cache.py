"""Short-lived read cache for derived views.

Standings and analytics are recomputed on read; rapid repeated reads within a
few seconds are served from this cache. Entries are pure derived views, so
losing them (process restart, ``NullCache``) is always safe.

The cache is injected into the read paths, which lets callers swap the
in-memory implementation for a no-op or a distributed one without touching
business logic.
"""

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from typing import Any, Protocol

from ..config.settings import Settings

logger = logging.getLogger(__name__)

CacheKey = tuple[Hashable, ...]


class ReadCache(Protocol):
    """Interface every read cache implements."""

    def get(self, key: CacheKey) -> Any | None: ...

    def set(self, key: CacheKey, value: Any) -> None: ...

    def clear(self) -> None: ...


class NullCache:
    """Cache that never stores anything."""

    def get(self, key: CacheKey) -> Any | None:
        return None

    def set(self, key: CacheKey, value: Any) -> None:
        return None

    def clear(self) -> None:
        return None


class MemoryTTLCache:
    """In-process cache with per-entry expiry and LRU eviction.

    Args:
        ttl: Seconds an entry stays valid
        max_entries: Oldest entries are evicted beyond this size
        clock: Monotonic time source, injectable for tests
    """

    def __init__(
        self,
        ttl: float,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[CacheKey, tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: CacheKey, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + self.ttl, value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def build_cache(config: Settings) -> ReadCache:
    """Create the read cache selected by ``cache_backend``."""
    if config.cache_backend == "none":
        logger.debug("Read cache disabled")
        return NullCache()
    return MemoryTTLCache(ttl=config.cache_ttl)
