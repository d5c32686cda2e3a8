"""TTL + LRU cache for rendered post HTML."""

import threading
import time
from collections import OrderedDict
from typing import Generic, TypeVar

V = TypeVar("V")


class TTLCache(Generic[V]):
    """Thread-safe in-memory cache with time-to-live and max-size eviction.

    Usage::

        cache = TTLCache(ttl=300, max_size=100)
        cache.set(("3f2a", "two-phase-commit"), html)
        hit = cache.get(("3f2a", "two-phase-commit"))  # None if expired/missing

    Rendered HTML is keyed by ``(index version, slug)``, so a rebuilt index
    never serves fragments rendered from an older body.
    """

    def __init__(self, ttl: float = 300, max_size: int = 100) -> None:
        self._ttl = ttl
        self._max_size = max_size
        self._lock = threading.Lock()
        # OrderedDict preserves insertion order for LRU eviction
        self._store: OrderedDict[object, tuple[V, float]] = OrderedDict()

    def get(self, key: object) -> V | None:
        """Return the cached value if present and not expired, else None."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, ts = entry
            if time.monotonic() - ts > self._ttl:
                del self._store[key]
                return None
            self._store.move_to_end(key)
            return value

    def set(self, key: object, value: V) -> None:
        """Store a value under *key*, evicting the oldest entry if at capacity."""
        with self._lock:
            if key in self._store:
                self._store.move_to_end(key)
            self._store[key] = (value, time.monotonic())
            while len(self._store) > self._max_size:
                self._store.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        return len(self._store)
