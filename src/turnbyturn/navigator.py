# navigator.py
# Public entry point for the navigation system.
# Owns no business logic; wires config, provider, engine and logger together.

import logging
import time
from typing import Optional, Tuple

import requests

from .listeners import NavigationListener
from .models import Coord, NavigationState, Position, Route
from .nav_config import NavConfig
from .nav_logger import NavLogger
from .navigation_engine import NavigationEngine
from .route_provider import RouteProvider

logger = logging.getLogger(__name__)


class NavigationSystem:
    """
    High-level navigation facade.

    Typical lifecycle:
        nav = NavigationSystem(NavConfig.from_env())
        nav.add_listener(my_ui)
        nav.start_navigation(Coord(52.517, 13.388), Coord(52.529, 13.397))

        # GPS loop:
        nav.update_raw(lat, lon, bearing, speed_kmh)

    Args:
        config:   Optional NavConfig; defaults to NavConfig().
        provider: Pre-built RouteProvider; built from config when omitted.
        session:  requests.Session shared by every backend.
    """

    def __init__(
        self,
        config: Optional[NavConfig] = None,
        provider: Optional[RouteProvider] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config or NavConfig()

        # Specialist modules
        self._provider = provider or RouteProvider.from_config(self.config, session=session)
        self._engine = NavigationEngine(self._provider, self.config)
        self._logger: Optional[NavLogger] = None

        if self.config.log_dir:
            self._logger = NavLogger(self.config)
            self._engine.add_listener(self._logger)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: NavigationListener) -> None:
        self._engine.add_listener(listener)

    def remove_listener(self, listener: NavigationListener) -> None:
        self._engine.remove_listener(listener)

    # ------------------------------------------------------------------
    # Navigation control
    # ------------------------------------------------------------------

    def start_navigation(self, origin: Coord, destination: Coord, wait: Optional[float] = None) -> Tuple[bool, str]:
        """
        Calculate a route and begin tracking.

        Args:
            origin:      Starting coordinate.
            destination: Target coordinate.
            wait:        Seconds to block for the route; None returns immediately.

        Returns:
            (success, message). Without wait, success only means the request
            was accepted; the outcome arrives through listener events.
        """
        self._engine.calculate_and_start(origin, destination)
        if wait is None:
            return True, "Route calculation started."

        self._engine.join(wait)
        state = self._engine.state
        if state.is_navigating and state.route is not None:
            route = state.route
            logger.info(f"Route ready: {len(route.steps)} steps via {route.backend}.")
            return True, f"Route ready. {len(route.steps)} steps."

        msg = self._provider.last_error or "Route calculation did not finish."
        logger.warning(f"Route calculation failed: {msg}")
        return False, msg

    def start_with_route(self, route: Route) -> None:
        """Navigate a route obtained elsewhere, e.g. NavLogger.load_route()."""
        self._engine.start(route)

    def stop_navigation(self) -> None:
        """Forcibly end the current navigation session."""
        self._engine.stop()
        logger.info("Navigation stopped by user.")

    def shutdown(self, timeout: Optional[float] = None) -> None:
        self._engine.shutdown(timeout)

    # ------------------------------------------------------------------
    # GPS update: call this on every position fix
    # ------------------------------------------------------------------

    def update(self, position: Position) -> NavigationState:
        """
        Process a new position fix and return the resulting state.

        Args:
            position: Current fix.

        Returns:
            NavigationState after the update.
        """
        self._engine.on_position(position)
        return self._engine.state

    def update_raw(
        self,
        lat: float,
        lon: float,
        bearing: float = 0.0,
        speed_kmh: float = 0.0,
        timestamp: Optional[float] = None,
    ) -> NavigationState:
        ts = time.time() if timestamp is None else timestamp
        return self.update(Position(Coord(lat, lon), bearing, speed_kmh, ts))

    # ------------------------------------------------------------------
    # Convenience read-only properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> NavigationState:
        return self._engine.state

    @property
    def is_active(self) -> bool:
        return self._engine.is_navigating

    @property
    def provider(self) -> RouteProvider:
        return self._provider

    @property
    def engine(self) -> NavigationEngine:
        return self._engine

    @property
    def nav_logger(self) -> Optional[NavLogger]:
        return self._logger
