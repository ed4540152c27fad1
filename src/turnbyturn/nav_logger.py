# nav_logger.py
# Handles all file I/O for the navigation system.
# Saves routes as JSON and navigation events as JSON lines.

import json
import logging
import os
from datetime import datetime
from typing import Optional

from .listeners import NavigationListener
from .models import NavigationState, Position, Route
from .nav_config import NavConfig

logger = logging.getLogger(__name__)


class NavLogger(NavigationListener):
    """
    Persists route data and navigation events to files under config.log_dir.

    Attach it to a NavigationEngine like any other listener: routes are saved
    when navigation starts or a reroute lands, and every state update is
    appended to the session log.

    Args:
        config: NavConfig instance for file paths and directories.
    """

    def __init__(self, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()
        os.makedirs(self.config.log_dir or ".", exist_ok=True)

    # ------------------------------------------------------------------
    # Route persistence
    # ------------------------------------------------------------------

    def save_route(self, route: Route) -> bool:
        """
        Serialize a route to JSON.

        Args:
            route: Route to persist.

        Returns:
            True on success, False on failure.
        """
        filepath = self.config.route_filepath
        try:
            data = {
                "saved_at": datetime.now().isoformat(),
                "backend": route.backend,
                "step_count": len(route.steps),
                "route": route.to_dict(),
            }
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            logger.info(f"Route saved to {filepath} ({len(route.steps)} steps).")
            return True
        except IOError as e:
            logger.error(f"Failed to save route to {filepath}: {e}")
            return False

    def load_route(self, filepath: Optional[str] = None) -> Optional[Route]:
        """
        Load a previously saved route from JSON.

        Args:
            filepath: Path override; uses config default if omitted.

        Returns:
            Route, or None if loading failed.
        """
        path = filepath or self.config.route_filepath
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            route = Route.from_dict(data["route"])
            logger.info(f"Route loaded from {path} ({len(route.steps)} steps).")
            return route
        except (IOError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Failed to load route from {path}: {e}")
            return None

    # ------------------------------------------------------------------
    # Session event logging
    # ------------------------------------------------------------------

    def log_event(self, state: NavigationState, event: str = "state") -> None:
        """
        Append a single navigation event to the session log file.

        Args:
            state: Snapshot to record.
            event: Short event name stored alongside the snapshot.
        """
        entry = {"timestamp": datetime.now().isoformat(), "event": event}
        entry.update(state.to_dict())
        self._append(entry)

    def log_message(self, event: str, message: str) -> None:
        self._append({"timestamp": datetime.now().isoformat(), "event": event, "message": message})

    def _append(self, entry: dict) -> None:
        try:
            with open(self.config.session_filepath, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except IOError as e:
            logger.error(f"Failed to write event log: {e}")

    # ------------------------------------------------------------------
    # NavigationListener hooks
    # ------------------------------------------------------------------

    def on_navigation_started(self, route: Route) -> None:
        self.save_route(route)

    def on_route_recalculated(self, route: Route) -> None:
        self.save_route(route)
        self.log_message("rerouted", f"New route from {route.backend}: {route.total_distance_m:.0f} m")

    def on_state_updated(self, state: NavigationState) -> None:
        self.log_event(state)

    def on_off_route(self, position: Position, distance_m: float) -> None:
        self.log_message("off_route", f"{distance_m:.0f} m from route at {position.coord}")

    def on_destination_reached(self) -> None:
        self.log_message("arrived", "Destination reached")

    def on_navigation_error(self, message: str) -> None:
        self.log_message("error", message)

    def on_navigation_stopped(self) -> None:
        self.log_message("stopped", "Navigation stopped")
