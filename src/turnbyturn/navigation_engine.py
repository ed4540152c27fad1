# navigation_engine.py
# State machine that tracks a vehicle against an active route.
# Call start() (or calculate_and_start()) once, then on_position() on every fix.

import logging
import threading
import time
from dataclasses import replace
from typing import Callable, List, Optional, Sequence

from .geo_utils import distance, distance_along_route, mean_distance, nearest_index, path_length
from .listeners import NavigationListener
from .models import (
    Coord, NavigationState, NavStatus, Position, Route, RouteResult, RouteStep, ThrottleState,
)
from .nav_config import NavConfig
from .route_provider import RouteProvider

logger = logging.getLogger(__name__)


class NavigationEngine:
    """
    Owns the NavigationState of a single navigation session.

    Lifecycle:
        IDLE → CALCULATING → NAVIGATING ⇄ REROUTING → ARRIVED
        stop() returns to IDLE from any state.

    All state changes (position updates, reroute completion, start/stop)
    happen under one re-entrant lock, and listener callbacks run inside it,
    so events arrive in the order the updates were processed. Route requests
    run on worker threads; their results are dropped if the session they
    belong to has been stopped or replaced in the meantime.

    Usage:
        engine = NavigationEngine(provider, config)
        engine.add_listener(my_listener)
        engine.calculate_and_start(origin, destination)

        # Inside the position loop:
        engine.on_position(Position(Coord(lat, lon), bearing, speed_kmh, ts))

    Args:
        provider: RouteProvider used for initial routes and reroutes.
        config:   NavConfig with thresholds; defaults to NavConfig().
        clock:    Monotonic time source in seconds (throttle bookkeeping).
    """

    def __init__(
        self,
        provider: RouteProvider,
        config: Optional[NavConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or NavConfig()
        self._provider = provider
        self._clock = clock
        self._lock = threading.RLock()
        self._listeners: List[NavigationListener] = []
        self._workers: List[threading.Thread] = []

        self._state = NavigationState()
        self._throttle = ThrottleState()
        self._rerouting = False
        self._session = 0
        self._last_valid_step_distance = 0.0
        self._update_count = 0

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: NavigationListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: NavigationListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> NavigationState:
        with self._lock:
            return self._state

    @property
    def is_navigating(self) -> bool:
        return self.state.is_navigating

    @property
    def rerouting_in_progress(self) -> bool:
        with self._lock:
            return self._rerouting

    @property
    def throttle(self) -> ThrottleState:
        with self._lock:
            return self._throttle

    # ------------------------------------------------------------------
    # Session control
    # ------------------------------------------------------------------

    def calculate_and_start(self, origin: Coord, destination: Coord) -> None:
        """Request a route in the background and start navigating when it arrives."""
        with self._lock:
            self._session += 1
            session = self._session
            self._reset_tracking()
            self._state = NavigationState(status=NavStatus.CALCULATING)
            logger.info(f"Calculating route: {origin} → {destination}")
            self._emit("on_route_calculating")
            self._spawn(self._run_calculation, origin, destination, session)

    def start(self, route: Route) -> None:
        """Begin navigating a pre-calculated route."""
        with self._lock:
            self._session += 1
            self._reset_tracking()
            self._start_locked(route)

    def stop(self) -> None:
        """End navigation. In-flight route requests finish but are ignored."""
        with self._lock:
            self._session += 1
            self._reset_tracking()
            self._state = NavigationState()
            logger.info("Navigation stopped.")
            self._emit("on_navigation_stopped")

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for background route requests to finish.

        Must not be called from a listener callback.

        Returns:
            True when no worker is still running.
        """
        with self._lock:
            workers = list(self._workers)
        for worker in workers:
            worker.join(timeout)
        with self._lock:
            self._workers = [w for w in self._workers if w.is_alive()]
            return not self._workers

    def shutdown(self, timeout: Optional[float] = None) -> None:
        self.stop()
        self.join(timeout)

    # ------------------------------------------------------------------
    # Core method: call on every position fix
    # ------------------------------------------------------------------

    def on_position(self, position: Position) -> None:
        """
        Process one position fix: off-route check, progress, steps, arrival.

        No-op unless the engine is navigating.
        """
        with self._lock:
            if not self._state.is_navigating or self._state.route is None:
                logger.debug("Position received but not navigating.")
                return

            session = self._session
            cfg = self.config
            route = self._state.route
            points = route.points
            coord = position.coord
            self._state = replace(self._state, current_position=position)
            self._update_count += 1

            # 1. Projection / off-route
            route_index = nearest_index(coord, points)
            distance_to_route = distance(coord, points[route_index])
            if distance_to_route > cfg.off_route_threshold_m:
                self._emit("on_off_route", position, distance_to_route)
                # a listener may have stopped or restarted navigation
                if session != self._session:
                    return
                if not self._rerouting:
                    self._maybe_reroute(coord, route.destination, distance_to_route)
                    if session != self._session:
                        return

            # 2. Remaining distance / time
            remaining_m = path_length(points, route_index, len(points) - 1)
            remaining_s = remaining_m / route.average_speed_ms(cfg.default_cruise_speed_ms)

            # 3. Step progression
            previous_index = self._state.current_step_index
            step_index = self._advance_steps(coord, route, previous_index)

            # 4. Distance to the current maneuver
            to_next_m = self._distance_to_step(coord, route, step_index)

            # 5. Arrival
            on_last_step = step_index >= len(route.steps) - 1
            if remaining_m <= cfg.arrival_remaining_epsilon_m or (
                on_last_step
                and distance(coord, route.destination) < cfg.destination_arrival_threshold_m
            ):
                self._arrive(step_index)
                return

            self._state = replace(
                self._state,
                current_step_index=step_index,
                remaining_distance_m=remaining_m,
                remaining_duration_s=remaining_s,
                distance_to_next_step_m=to_next_m,
            )

            if step_index != previous_index:
                step = route.steps[step_index]
                logger.info(f"Step changed to {step_index}: {step.instruction}")
                self._emit("on_step_changed", step, step_index)
                if session != self._session:
                    return

            self._log_progress(distance_to_route)
            self._emit("on_position_updated", position)
            if session != self._session:
                return
            self._emit("on_state_updated", self._state)

    # ------------------------------------------------------------------
    # Rerouting
    # ------------------------------------------------------------------

    def _throttle_allows(self, now: float, coord: Coord) -> bool:
        cfg = self.config
        t = self._throttle
        if t.last_completed_time is not None and now - t.last_completed_time < cfg.recalc_cooldown_s:
            return False
        if t.last_attempt_time is None:
            return True
        if now - t.last_attempt_time < cfg.min_recalc_interval_s:
            return False
        if t.last_attempt_coord is not None and distance(t.last_attempt_coord, coord) < cfg.min_recalc_distance_m:
            return False
        return True

    def _maybe_reroute(self, coord: Coord, destination: Coord, distance_to_route: float) -> None:
        now = self._clock()
        if not self._throttle_allows(now, coord):
            logger.debug(f"Off route ({distance_to_route:.0f} m) but recalculation is throttled.")
            return

        self._throttle = replace(self._throttle, last_attempt_time=now, last_attempt_coord=coord)
        self._rerouting = True
        self._state = replace(self._state, status=NavStatus.REROUTING)
        logger.info(f"Off route ({distance_to_route:.0f} m), recalculating...")
        session = self._session
        self._emit("on_route_calculating")
        if session != self._session:
            return
        self._spawn(self._run_recalculation, coord, destination, session)

    def _run_recalculation(self, origin: Coord, destination: Coord, session: int) -> None:
        result = self._request(self._provider.recalculate_route, origin, destination)

        with self._lock:
            if session != self._session or not self._state.is_navigating:
                logger.info("Discarding recalculated route: navigation session has ended.")
                return

            self._rerouting = False
            self._throttle = replace(self._throttle, last_completed_time=self._clock())

            if not result.ok:
                self._state = replace(self._state, status=NavStatus.NAVIGATING)
                logger.warning(f"Recalculation failed, keeping current route: {result.error}")
                self._emit("on_navigation_error", f"Unable to recalculate route: {result.error}")
                return

            route = result.route
            self._last_valid_step_distance = 0.0
            self._state = replace(
                self._state,
                status=NavStatus.NAVIGATING,
                route=route,
                current_step_index=0,
                remaining_distance_m=route.total_distance_m,
                remaining_duration_s=route.total_duration_s,
                distance_to_next_step_m=route.steps[0].distance_m,
            )
            logger.info(f"Route recalculated via {result.backend}: {route.total_distance_m / 1000:.1f} km")
            self._emit("on_route_recalculated", route)
            self._emit("on_state_updated", self._state)

    def _run_calculation(self, origin: Coord, destination: Coord, session: int) -> None:
        result = self._request(self._provider.calculate_route, origin, destination)

        with self._lock:
            if session != self._session or self._state.status != NavStatus.CALCULATING:
                logger.info("Discarding calculated route: request was superseded.")
                return

            if not result.ok:
                self._state = NavigationState()
                logger.error(f"Failed to calculate route: {result.error}")
                self._emit("on_navigation_error", f"Could not calculate route: {result.error}")
                return

            self._start_locked(result.route)

    @staticmethod
    def _request(call: Callable[[Coord, Coord], RouteResult], origin: Coord, destination: Coord) -> RouteResult:
        try:
            return call(origin, destination)
        except Exception as e:
            logger.exception("Route request crashed")
            return RouteResult(error=str(e))

    # ------------------------------------------------------------------
    # Step progression
    # ------------------------------------------------------------------

    def _advance_steps(self, coord: Coord, route: Route, index: int) -> int:
        cfg = self.config
        steps = route.steps
        while index < len(steps) - 1:
            to_anchor = distance_along_route(coord, steps[index].location, route.points)

            # Anchor far behind: the fix stream skipped the maneuver
            if to_anchor < -cfg.auto_advance_behind_m:
                logger.info(f"Auto-advancing: step {index} behind by {-to_anchor:.0f} m")
                index += 1
                self._last_valid_step_distance = 0.0
                continue

            if -cfg.maneuver_passed_threshold_m <= to_anchor <= cfg.maneuver_arrival_threshold_m:
                if self._maneuver_completed(coord, steps[index], steps[index + 1], route.points):
                    logger.info(f"Maneuver confirmed: advancing to step {index + 1}")
                    index += 1
                    self._last_valid_step_distance = 0.0
                    continue
            break
        return index

    def _maneuver_completed(
        self,
        coord: Coord,
        step: RouteStep,
        next_step: Optional[RouteStep],
        points: Sequence[Coord],
    ) -> bool:
        """Combine index progress, segment coverage and lookahead proximity."""
        if next_step is None:
            return True

        cfg = self.config
        current_idx = nearest_index(coord, points)
        step_idx = nearest_index(step.location, points)
        next_idx = nearest_index(next_step.location, points)
        if step_idx >= next_idx:
            return True

        progress = (current_idx - step_idx) / (next_idx - step_idx)
        if progress < cfg.completion_min_progress:
            return False
        if progress > cfg.completion_confirm_progress:
            return True

        to_next = distance_along_route(coord, next_step.location, points)
        segment = distance_along_route(step.location, next_step.location, points)
        if segment > 0 and to_next / segment < cfg.completion_remaining_fraction:
            return True

        lookahead = cfg.completion_lookahead_points
        if current_idx + lookahead < len(points):
            window = points[current_idx:current_idx + lookahead]
            if mean_distance(coord, window) < cfg.completion_lookahead_radius_m:
                return True
        return False

    def _distance_to_step(self, coord: Coord, route: Route, index: int) -> float:
        min_valid = self.config.min_valid_step_distance_m
        calculated = max(0.0, distance_along_route(coord, route.steps[index].location, route.points))

        if calculated > min_valid:
            self._last_valid_step_distance = calculated
            return calculated
        if calculated > 0.0:
            return calculated
        # A sudden 0 m right after a sensible reading is projection noise
        if self._last_valid_step_distance > min_valid:
            return self._last_valid_step_distance
        return calculated

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _start_locked(self, route: Route) -> None:
        if not route.is_valid:
            self._state = NavigationState()
            logger.warning(f"Refusing to navigate an invalid route ({len(route.points)} points, "
                           f"{len(route.steps)} steps).")
            self._emit("on_navigation_error", "Route has no usable geometry or steps")
            return

        self._state = NavigationState(
            status=NavStatus.NAVIGATING,
            route=route,
            current_step_index=0,
            remaining_distance_m=route.total_distance_m,
            remaining_duration_s=route.total_duration_s,
            distance_to_next_step_m=route.steps[0].distance_m,
        )
        logger.info(f"Starting navigation: {route.total_distance_m:.0f} m, {len(route.steps)} steps")
        self._emit("on_navigation_started", route)
        self._emit("on_state_updated", self._state)

    def _arrive(self, step_index: int) -> None:
        self._state = replace(
            self._state,
            status=NavStatus.ARRIVED,
            current_step_index=step_index,
            remaining_distance_m=0.0,
            remaining_duration_s=0.0,
            distance_to_next_step_m=0.0,
        )
        self._rerouting = False
        logger.info("Destination reached!")
        self._emit("on_destination_reached")
        self._emit("on_state_updated", self._state)

    def _reset_tracking(self) -> None:
        self._throttle = ThrottleState()
        self._rerouting = False
        self._last_valid_step_distance = 0.0
        self._update_count = 0

    def _log_progress(self, distance_to_route: float) -> None:
        s = self._state
        every = max(1, self.config.log_every_n_updates)
        level = logging.INFO if self._update_count % every == 0 else logging.DEBUG
        logger.log(
            level,
            f"step {s.current_step_index}/{len(s.route.steps) - 1}, "
            f"{s.remaining_distance_m:.0f} m / {s.remaining_duration_s:.0f} s left, "
            f"next maneuver in {s.distance_to_next_step_m:.0f} m, off-route by {distance_to_route:.0f} m",
        )

    def _emit(self, event: str, *args) -> None:
        for listener in list(self._listeners):
            try:
                getattr(listener, event)(*args)
            except Exception:
                logger.exception(f"Listener {type(listener).__name__}.{event} failed")

    def _spawn(self, target, *args) -> None:
        worker = threading.Thread(target=target, args=args, name=f"nav-{target.__name__}", daemon=True)
        self._workers = [w for w in self._workers if w.is_alive()]
        self._workers.append(worker)
        worker.start()
