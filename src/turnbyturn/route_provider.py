# route_provider.py
# Route acquisition: cache lookup, then ordered fallback across backends.
# Remembers which backend answered last so reroutes keep the same style.

import logging
import threading
from typing import List, Optional, Sequence

import requests

from .backends import BackendError, RouteBackend, build_backends
from .models import Coord, RouteResult
from .nav_config import NavConfig
from .route_cache import RouteCache, cache_key

logger = logging.getLogger(__name__)


class RouteProvider:
    """
    Tries each backend in priority order and returns the first usable route.

    Nothing here raises on backend failure: the caller gets a RouteResult
    whose error carries the last failure message.

    Usage:
        provider = RouteProvider.from_config(NavConfig.from_env())
        result = provider.calculate_route(origin, destination)
        if result.ok:
            engine.start(result.route)

    Args:
        backends: Adapters in priority order.
        cache:    Shared RouteCache; a default one is created when omitted.
    """

    def __init__(self, backends: Sequence[RouteBackend], cache: Optional[RouteCache] = None) -> None:
        self.backends: List[RouteBackend] = list(backends)
        self.cache = cache if cache is not None else RouteCache()
        self._last_backend: Optional[RouteBackend] = None
        self._last_error: Optional[str] = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: NavConfig, session: Optional[requests.Session] = None) -> "RouteProvider":
        cache = RouteCache(ttl_s=config.cache_ttl_s, max_size=config.cache_max_size)
        return cls(build_backends(config, session=session), cache=cache)

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def last_successful_backend(self) -> Optional[str]:
        with self._lock:
            return self._last_backend.name if self._last_backend else None

    @property
    def last_error(self) -> Optional[str]:
        with self._lock:
            return self._last_error

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def calculate_route(self, origin: Coord, destination: Coord) -> RouteResult:
        """
        Route from origin to destination, from cache or the first working backend.

        Args:
            origin:      Start coordinate.
            destination: Target coordinate.

        Returns:
            RouteResult with route on success, error message otherwise.
        """
        key = cache_key(origin, destination)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Route from cache: {key}")
            return RouteResult(route=cached, backend=cached.backend, from_cache=True)

        return self._try_backends(self.backends, origin, destination, key)

    def recalculate_route(self, current_position: Coord, destination: Coord) -> RouteResult:
        """
        Reroute from the vehicle's position, preferring the last successful backend.

        Falls back to the full calculate_route() chain when the preferred
        backend fails or none has succeeded yet.
        """
        with self._lock:
            preferred = self._last_backend

        if preferred is not None:
            key = cache_key(current_position, destination)
            try:
                route = preferred.fetch_route(current_position, destination)
            except BackendError as e:
                self._set_error(str(e))
                logger.warning(f"Recalculation with {preferred.name} failed, trying fallback: {e}")
            else:
                logger.info(f"Recalculated route using {preferred.name}")
                self.cache.put(key, route)
                return RouteResult(route=route, backend=preferred.name)

        logger.debug("Recalculation falling back to full backend selection")
        return self.calculate_route(current_position, destination)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _try_backends(
        self,
        backends: Sequence[RouteBackend],
        origin: Coord,
        destination: Coord,
        key: str,
    ) -> RouteResult:
        last_error: Optional[str] = None

        for backend in backends:
            if not backend.is_available:
                logger.debug(f"Skipping {backend.name} (not configured)")
                continue
            try:
                route = backend.fetch_route(origin, destination)
            except BackendError as e:
                last_error = str(e)
                self._set_error(last_error)
                logger.warning(f"Backend {backend.name} failed: {e}")
                continue

            with self._lock:
                self._last_backend = backend
            self.cache.put(key, route)
            logger.info(
                f"Route from {backend.name}: {len(route.points)} pts, "
                f"{len(route.steps)} steps, {route.total_distance_m / 1000:.1f} km"
            )
            return RouteResult(route=route, backend=backend.name)

        if last_error is None:
            last_error = "No routing backend available"
            self._set_error(last_error)
        logger.error(f"All routing backends failed: {last_error}")
        return RouteResult(error=last_error)

    def _set_error(self, message: str) -> None:
        with self._lock:
            self._last_error = message
