from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Union

from .logging import get_logger

logger = get_logger(__name__)


class CacheTTL(Enum):
    """Predefined cache durations."""

    HOUR = timedelta(hours=1)
    DAY = timedelta(days=1)


@dataclass
class CacheEntry:
    """Cached result with the time it was stored."""

    timestamp: datetime
    payload: Any


def _normalize_ttl(ttl: Union[CacheTTL, timedelta, int, float]) -> timedelta:
    if isinstance(ttl, CacheTTL):
        return ttl.value
    if isinstance(ttl, timedelta):
        return ttl
    if isinstance(ttl, (int, float)):
        return timedelta(seconds=float(ttl))
    raise TypeError(f"Unsupported TTL type: {type(ttl)!r}")


def _point_key(point: Mapping[str, float]) -> str:
    return f"{float(point['lat']):.6f},{float(point['lng']):.6f}"


class RouteCache:
    """In-memory LRU cache for directions results.

    A hit answers a route request without spending any directions quota.
    """

    def __init__(
        self,
        max_size: int = 100,
        ttl: Union[CacheTTL, timedelta, int, float] = CacheTTL.DAY,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.max_size = max_size
        self.ttl = _normalize_ttl(ttl)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key(origin: Mapping[str, float], destination: Mapping[str, float], mode: str) -> str:
        return f"{_point_key(origin)}_{_point_key(destination)}_{mode}"

    def get(self, origin: Mapping[str, float], destination: Mapping[str, float], mode: str) -> Optional[Any]:
        key = self.key(origin, destination, mode)
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        if self._clock() - entry.timestamp > self.ttl:
            del self._entries[key]
            self.misses += 1
            return None

        self._entries.move_to_end(key)
        self.hits += 1
        if (self.hits + self.misses) % 10 == 0:
            logger.info("Route cache: %s hit rate, %d API calls saved", self.hit_rate, self.hits)
        return entry.payload

    def set(self, origin: Mapping[str, float], destination: Mapping[str, float], mode: str, payload: Any) -> None:
        key = self.key(origin, destination, mode)
        if key in self._entries:
            self._entries.move_to_end(key)
        elif len(self._entries) >= self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted least recently used route %s", evicted)
        self._entries[key] = CacheEntry(timestamp=self._clock(), payload=payload)

    def clear(self) -> None:
        self._entries.clear()

    @property
    def hit_rate(self) -> str:
        total = self.hits + self.misses
        if not total:
            return "0%"
        return f"{self.hits / total * 100:.1f}%"

    def stats(self) -> Dict[str, Any]:
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "ttl": self.ttl,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hit_rate,
            "api_calls_saved": self.hits,
        }
