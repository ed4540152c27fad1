# listeners.py
# Callback interface for navigation events.
# Subclass and override only what you need; every hook defaults to a no-op.

from .models import NavigationState, Position, Route, RouteStep


class NavigationListener:
    """Receives events from NavigationEngine, in processing order."""

    def on_route_calculating(self) -> None:
        """Route calculation (initial or reroute) has started."""

    def on_navigation_started(self, route: Route) -> None:
        """Navigation began on route."""

    def on_navigation_stopped(self) -> None:
        """Navigation was stopped explicitly."""

    def on_position_updated(self, position: Position) -> None:
        """A position fix was processed."""

    def on_state_updated(self, state: NavigationState) -> None:
        """Distances, times or step changed."""

    def on_step_changed(self, step: RouteStep, index: int) -> None:
        """The current instruction changed. Always precedes on_state_updated."""

    def on_destination_reached(self) -> None:
        """The vehicle arrived; the engine is no longer navigating."""

    def on_route_recalculated(self, route: Route) -> None:
        """A reroute replaced the active route."""

    def on_navigation_error(self, message: str) -> None:
        """Non-fatal failure, e.g. no backend could produce a route."""

    def on_off_route(self, position: Position, distance_m: float) -> None:
        """The vehicle is further than the off-route threshold from the route."""
