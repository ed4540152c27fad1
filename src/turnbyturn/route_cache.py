# route_cache.py
# Time- and size-bounded store for recently calculated routes.
# Keys are origin/destination pairs, not navigation sessions.

import logging
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from .models import Coord, Route

logger = logging.getLogger(__name__)


def cache_key(origin: Coord, destination: Coord) -> str:
    """Key for an od-pair, rounded to 4 decimals (~11 m)."""
    return "%.4f,%.4f->%.4f,%.4f" % (origin.lat, origin.lon, destination.lat, destination.lon)


class RouteCache:
    """
    key → (route, inserted_at) with TTL expiry and oldest-first eviction.

    Expired entries are dropped when get() meets them; put() sweeps all
    expired entries and then evicts by insertion time until the cache is
    back within max_size. Access does not refresh an entry.

    Args:
        ttl_s:    Lifetime of an entry in seconds.
        max_size: Maximum number of entries kept after a put().
        clock:    Time source, monotonic seconds.
    """

    def __init__(
        self,
        ttl_s: float = 300.0,
        max_size: int = 20,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_s = ttl_s
        self.max_size = max_size
        self._clock = clock
        self._entries: Dict[str, Tuple[Route, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Route]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            route, inserted_at = entry
            age = self._clock() - inserted_at
            if age >= self.ttl_s:
                del self._entries[key]
                logger.debug(f"Cache entry expired: {key} (age {age:.0f}s)")
                return None
            logger.debug(f"Cache hit: {key} (age {age:.0f}s)")
            return route

    def put(self, key: str, route: Route) -> None:
        with self._lock:
            now = self._clock()
            self._entries[key] = (route, now)
            self._sweep(now)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    # ------------------------------------------------------------------

    def _sweep(self, now: float) -> None:
        expired = [k for k, (_, ts) in self._entries.items() if now - ts >= self.ttl_s]
        for k in expired:
            del self._entries[k]

        overflow = len(self._entries) - self.max_size
        if overflow > 0:
            oldest = sorted(self._entries.items(), key=lambda item: item[1][1])[:overflow]
            for k, _ in oldest:
                del self._entries[k]
            logger.debug(f"Cache evicted {overflow} oldest route(s).")
