"""In-memory TTL cache used by the upstream API wrappers."""

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar("T")

MINUTE = 60.0
HOUR = 60 * MINUTE
DAY = 24 * HOUR


@dataclass
class _Entry(Generic[T]):
    value: T
    stored_at: float


class TTLCache(Generic[T]):
    """Insertion-ordered cache with per-instance TTL and optional size cap.

    With ``lru=True`` a hit moves the key to the end, so capacity eviction
    drops the least recently used entry. Otherwise the oldest insertion goes
    first. Expired entries are always purged before evicting live ones.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_size: Optional[int] = None,
        lru: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self.lru = lru
        self._clock = clock
        self._data: "OrderedDict[str, _Entry[T]]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def _expired(self, entry: _Entry[T]) -> bool:
        return self._clock() - entry.stored_at >= self.ttl_seconds

    def get(self, key: str) -> Optional[T]:
        entry = self._data.get(key)
        if entry is None:
            self.misses += 1
            return None
        if self._expired(entry):
            del self._data[key]
            self.misses += 1
            return None
        if self.lru:
            self._data.move_to_end(key)
        self.hits += 1
        return entry.value

    def __contains__(self, key: str) -> bool:
        entry = self._data.get(key)
        return entry is not None and not self._expired(entry)

    def set(self, key: str, value: T) -> None:
        if key in self._data:
            del self._data[key]
        elif self.max_size is not None and len(self._data) >= self.max_size:
            self.evict()
        self._data[key] = _Entry(value=value, stored_at=self._clock())

    def evict(self) -> int:
        """Drop expired entries, or the oldest one if nothing has expired."""
        expired = [k for k, e in self._data.items() if self._expired(e)]
        for key in expired:
            del self._data[key]
        if expired:
            return len(expired)
        if self._data:
            self._data.popitem(last=False)
            return 1
        return 0

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> int:
        size = len(self._data)
        self._data.clear()
        return size

    def __len__(self) -> int:
        return len(self._data)

    def keys(self) -> list[str]:
        return list(self._data.keys())

    def stats(self) -> dict[str, Any]:
        valid = sum(1 for e in self._data.values() if not self._expired(e))
        lookups = self.hits + self.misses
        return {
            "size": len(self._data),
            "max_size": self.max_size,
            "valid_entries": valid,
            "expired_entries": len(self._data) - valid,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": f"{self.hits / lookups * 100:.1f}%" if lookups else "N/A",
        }
