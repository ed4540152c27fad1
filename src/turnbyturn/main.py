# main.py
# Entry point: feeds simulated or recorded positions into NavigationSystem.
# In production, replace the trace/simulation loop with your real GPS source.
#
# Usage:
#   turnbyturn-sim --origin 52.5170,13.3889 --destination 52.5291,13.3970
#   turnbyturn-sim --origin ... --destination ... --trace drive.csv

import argparse
import logging
import sys
import time
from typing import Iterator, List, Optional, Sequence

import pandas as pd

from .geo_utils import calculate_bearing, distance
from .listeners import NavigationListener
from .models import Coord, NavigationState, Position, Route, RouteStep
from .nav_config import NavConfig
from .navigator import NavigationSystem

logger = logging.getLogger(__name__)

TRACE_COLUMNS = ("lat", "lon", "bearing", "speed_kmh", "timestamp")


# ------------------------------------------------------------------
# Position sources
# ------------------------------------------------------------------

def load_trace(path: str) -> List[Position]:
    """
    Read a recorded drive from CSV.

    Required columns: lat, lon. Optional: bearing, speed_kmh, timestamp.
    Missing bearings are derived from consecutive points.

    Raises:
        ValueError: when lat/lon columns are absent.
    """
    df = pd.read_csv(path)
    df.columns = [str(c).strip().lower() for c in df.columns]
    if "lat" not in df.columns or "lon" not in df.columns:
        raise ValueError(f"Trace {path} needs 'lat' and 'lon' columns, got {list(df.columns)}")

    df = df.dropna(subset=["lat", "lon"]).reset_index(drop=True)
    if "bearing" not in df.columns:
        next_lat = df["lat"].shift(-1).fillna(df["lat"])
        next_lon = df["lon"].shift(-1).fillna(df["lon"])
        df["bearing"] = [
            calculate_bearing(a, b, c, d) for a, b, c, d in zip(df["lat"], df["lon"], next_lat, next_lon)
        ]
    if "speed_kmh" not in df.columns:
        df["speed_kmh"] = 0.0
    if "timestamp" not in df.columns:
        df["timestamp"] = df.index.astype(float)

    df = df.fillna({"bearing": 0.0, "speed_kmh": 0.0, "timestamp": 0.0})
    positions = [
        Position(Coord(float(r.lat), float(r.lon)), float(r.bearing), float(r.speed_kmh), float(r.timestamp))
        for r in df[list(TRACE_COLUMNS)].itertuples(index=False)
    ]
    logger.info(f"Loaded {len(positions)} positions from {path}")
    return positions


def simulate_drive(
    points: Sequence[Coord],
    speed_kmh: float = 50.0,
    interval_s: float = 1.0,
    start_time: float = 0.0,
) -> Iterator[Position]:
    """
    Yield fixes for a vehicle driving the polyline at constant speed.

    One fix every interval_s seconds, interpolated linearly between
    vertices; the last vertex is always emitted.
    """
    if not points:
        return
    step_m = max(speed_kmh / 3.6 * interval_s, 0.1)
    ts = start_time
    carry = 0.0  # distance already travelled into the current segment

    for a, b in zip(points, points[1:]):
        seg = distance(a, b)
        bearing = calculate_bearing(a.lat, a.lon, b.lat, b.lon)
        while carry < seg:
            f = carry / seg
            coord = Coord(a.lat + (b.lat - a.lat) * f, a.lon + (b.lon - a.lon) * f)
            yield Position(coord, bearing, speed_kmh, ts)
            ts += interval_s
            carry += step_m
        carry -= seg

    last = points[-1]
    prev = points[-2] if len(points) > 1 else last
    yield Position(last, calculate_bearing(prev.lat, prev.lon, last.lat, last.lon), 0.0, ts)


# ------------------------------------------------------------------
# Console output
# ------------------------------------------------------------------

class ConsoleListener(NavigationListener):
    """Prints navigation events to stdout."""

    def __init__(self) -> None:
        self.arrived = False
        self.failed: Optional[str] = None

    def on_route_calculating(self) -> None:
        print("[Nav] Calculating route...")

    def on_navigation_started(self, route: Route) -> None:
        print(f"[Nav] Route ready via {route.backend}: {len(route.steps)} steps, "
              f"{route.total_distance_m / 1000:.1f} km")
        print(f"[Nav] {route.steps[0].instruction}")

    def on_step_changed(self, step: RouteStep, index: int) -> None:
        print(f"[Nav] Step {index}: {step.instruction}")

    def on_state_updated(self, state: NavigationState) -> None:
        step = state.current_step
        if step is None:
            return
        print(f"  [{state.status.name}] in {state.format_distance_to_next_step()}: {step.instruction} "
              f"({state.format_remaining_distance()}, {state.format_remaining_duration()} left)")

    def on_off_route(self, position: Position, distance_m: float) -> None:
        print(f"  ⚠  Off route by {distance_m:.0f} m")

    def on_route_recalculated(self, route: Route) -> None:
        print(f"[Nav] Rerouted: {route.total_distance_m / 1000:.1f} km")

    def on_destination_reached(self) -> None:
        self.arrived = True
        print("  ✓  Destination reached. Navigation ended.")

    def on_navigation_error(self, message: str) -> None:
        self.failed = message
        print(f"[Nav] Error: {message}")


# ------------------------------------------------------------------
# CLI
# ------------------------------------------------------------------

def parse_coord(raw: str) -> Coord:
    try:
        lat, lon = (float(part) for part in raw.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected LAT,LON, got {raw!r}")
    return Coord(lat, lon)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="turnbyturn-sim",
        description="Calculate a route and replay a drive through the navigation engine.",
    )
    parser.add_argument("--origin", type=parse_coord, required=True, help="start as LAT,LON")
    parser.add_argument("--destination", type=parse_coord, required=True, help="target as LAT,LON")
    parser.add_argument("--trace", help="CSV with lat,lon[,bearing,speed_kmh,timestamp] to replay")
    parser.add_argument("--speed", type=float, default=50.0, help="simulated speed in km/h")
    parser.add_argument("--interval", type=float, default=1.0, help="seconds between simulated fixes")
    parser.add_argument("--delay", type=float, default=0.0, help="wall-clock pause between fixes")
    parser.add_argument("--log-dir", help="write active_route.json and nav_session.jsonl here")
    parser.add_argument("--timeout", type=float, default=20.0, help="seconds to wait for the first route")
    parser.add_argument("--verbose", action="store_true")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # Logging setup: configure once here, all modules inherit
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    overrides = {"log_dir": args.log_dir} if args.log_dir else {}
    config = NavConfig.from_env(**overrides)

    nav = NavigationSystem(config)
    console = ConsoleListener()
    nav.add_listener(console)

    success, msg = nav.start_navigation(args.origin, args.destination, wait=args.timeout)
    if not success:
        print(f"[Main] Could not start navigation: {msg}")
        return 1

    if args.trace:
        positions = load_trace(args.trace)
    else:
        positions = simulate_drive(nav.state.route.points, args.speed, args.interval, time.time())

    print("\n--- GPS Loop Active ---")
    for position in positions:
        nav.update(position)
        if console.arrived:
            break
        if args.delay:
            time.sleep(args.delay)

    nav.shutdown(timeout=5.0)
    print("\n--- Session complete ---")
    if config.log_dir:
        print(f"    Log files written to: {config.log_dir}/")
    return 0 if console.arrived else 2


if __name__ == "__main__":
    sys.exit(main())
