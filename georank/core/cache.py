"""In-process location cache with per-entry expiry."""

from __future__ import annotations

import threading
import time
from functools import lru_cache
from typing import Callable, Optional, Protocol, Tuple

from cachetools import TLRUCache

from georank.core.models import Location

_Entry = Tuple[Location, float]


class LocationCache(Protocol):
    def get(self, key: str) -> Optional[Location]: ...

    def set(self, key: str, value: Location, ttl: float) -> None: ...

    def clear(self) -> None: ...


def _time_to_use(key: str, entry: _Entry, now: float) -> float:
    return now + entry[1]


class TTLLocationCache:
    """Thread-safe read-through cache where every ``set`` carries its own TTL."""

    def __init__(self, maxsize: int = 50_000, timer: Callable[[], float] = time.monotonic) -> None:
        self._cache: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_time_to_use, timer=timer)
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Location]:
        with self._lock:
            entry = self._cache.get(key)
        return entry[0] if entry is not None else None

    def set(self, key: str, value: Location, ttl: float) -> None:
        if ttl <= 0:
            return
        with self._lock:
            self._cache[key] = (value, ttl)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()


@lru_cache(maxsize=1)
def get_location_cache() -> TTLLocationCache:
    """Process-wide cache shared by every resolver."""
    return TTLLocationCache()
