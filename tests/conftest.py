import math
import threading
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest
import requests

from turnbyturn.geo_utils import EARTH_RADIUS_M, path_length
from turnbyturn.listeners import NavigationListener
from turnbyturn.models import Coord, ManeuverKind, Route, RouteResult, RouteStep

BASE_LAT = 52.0
BASE_LON = 13.0


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

def meridian_points(n: int = 11, spacing_m: float = 100.0, lat0: float = BASE_LAT,
                    lon: float = BASE_LON) -> List[Coord]:
    """Points due north of lat0, spacing_m apart along the meridian."""
    step = math.degrees(spacing_m / EARTH_RADIUS_M)
    return [Coord(lat0 + i * step, lon) for i in range(n)]


def east_of(coord: Coord, meters: float) -> Coord:
    d_lon = math.degrees(meters / (EARTH_RADIUS_M * math.cos(math.radians(coord.lat))))
    return Coord(coord.lat, coord.lon + d_lon)


def make_route(
    points: Optional[Sequence[Coord]] = None,
    step_indices: Sequence[int] = (0, 10),
    duration_s: float = 100.0,
    backend: str = "osrm",
) -> Route:
    points = list(points or meridian_points())
    total = path_length(points)
    steps = []
    for n, idx in enumerate(step_indices):
        if n == 0:
            kind, text = ManeuverKind.DEPART, "Head north"
        elif n == len(step_indices) - 1:
            kind, text = ManeuverKind.ARRIVE, "You have arrived at your destination"
        else:
            kind = ManeuverKind.TURN_RIGHT if n % 2 else ManeuverKind.TURN_LEFT
            text = f"Turn {'right' if n % 2 else 'left'} onto Street {n}"
        steps.append(RouteStep(text, kind, 100.0, 10.0, points[idx]))
    return Route(
        origin=points[0],
        destination=points[-1],
        points=points,
        steps=steps,
        total_distance_m=total,
        total_duration_s=duration_s,
        backend=backend,
    )


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, json_error: bool = False) -> None:
        self.payload = payload
        self.status_code = status_code
        self.json_error = json_error

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self) -> Any:
        if self.json_error:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.payload


class FakeSession:
    """
    requests.Session stand-in. handlers maps a URL substring to a
    FakeResponse or an exception instance to raise.
    """

    def __init__(self, handlers: Dict[str, Any]) -> None:
        self.handlers = handlers
        self.calls: List[Dict[str, Any]] = []

    def _handle(self, method: str, url: str, **kwargs) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        for fragment, outcome in self.handlers.items():
            if fragment in url:
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
        raise requests.ConnectionError(f"no handler for {url}")

    def get(self, url: str, **kwargs) -> FakeResponse:
        return self._handle("GET", url, **kwargs)

    def post(self, url: str, **kwargs) -> FakeResponse:
        return self._handle("POST", url, **kwargs)


class StubProvider:
    """RouteProvider stand-in with scripted results and an optional gate."""

    def __init__(self, initial: Optional[RouteResult] = None, reroute: Optional[RouteResult] = None) -> None:
        self.initial = initial or RouteResult(error="no route")
        self.reroute = reroute or RouteResult(error="no route")
        self.gate: Optional[threading.Event] = None
        self.last_error: Optional[str] = None
        self.calculate_calls: List[tuple] = []
        self.recalculate_calls: List[tuple] = []

    def calculate_route(self, origin: Coord, destination: Coord) -> RouteResult:
        self.calculate_calls.append((origin, destination))
        if self.gate is not None:
            self.gate.wait(5.0)
        return self.initial

    def recalculate_route(self, origin: Coord, destination: Coord) -> RouteResult:
        self.recalculate_calls.append((origin, destination))
        if self.gate is not None:
            self.gate.wait(5.0)
        return self.reroute


class RecordingListener(NavigationListener):
    def __init__(self) -> None:
        self.events: List[tuple] = []

    def names(self) -> List[str]:
        return [e[0] for e in self.events]

    def on_route_calculating(self) -> None:
        self.events.append(("route_calculating",))

    def on_navigation_started(self, route) -> None:
        self.events.append(("navigation_started", route))

    def on_navigation_stopped(self) -> None:
        self.events.append(("navigation_stopped",))

    def on_position_updated(self, position) -> None:
        self.events.append(("position_updated", position))

    def on_state_updated(self, state) -> None:
        self.events.append(("state_updated", state))

    def on_step_changed(self, step, index) -> None:
        self.events.append(("step_changed", step, index))

    def on_destination_reached(self) -> None:
        self.events.append(("destination_reached",))

    def on_route_recalculated(self, route) -> None:
        self.events.append(("route_recalculated", route))

    def on_navigation_error(self, message) -> None:
        self.events.append(("navigation_error", message))

    def on_off_route(self, position, distance_m) -> None:
        self.events.append(("off_route", position, distance_m))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def route_factory() -> Callable[..., Route]:
    return make_route


@pytest.fixture
def route() -> Route:
    return make_route()


@pytest.fixture
def points() -> List[Coord]:
    return meridian_points()


@pytest.fixture
def offset_east() -> Callable[[Coord, float], Coord]:
    return east_of


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recorder() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def stub_provider() -> StubProvider:
    return StubProvider()


@pytest.fixture
def fake_session() -> Callable[[Dict[str, Any]], FakeSession]:
    return FakeSession


@pytest.fixture
def fake_response() -> Callable[..., FakeResponse]:
    return FakeResponse


# Known Google sample polyline and its decoded vertices at precision 5
SAMPLE_POLYLINE = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"
SAMPLE_COORDS = [(38.5, -120.2), (40.7, -120.95), (43.252, -126.453)]


@pytest.fixture
def osrm_payload() -> Dict[str, Any]:
    return {
        "code": "Ok",
        "routes": [{
            "distance": 1234.5,
            "duration": 98.7,
            "geometry": {"coordinates": [[13.0, 52.0], [13.0, 52.001], [13.001, 52.001]]},
            "legs": [{
                "summary": "Main Street",
                "steps": [
                    {
                        "name": "Main Street", "distance": 111.0, "duration": 9.0,
                        "maneuver": {"type": "depart", "location": [13.0, 52.0]},
                    },
                    {
                        "name": "Side Road", "distance": 68.0, "duration": 6.0,
                        "maneuver": {"type": "turn", "modifier": "right", "location": [13.0, 52.001]},
                    },
                    {
                        "name": "", "distance": 0.0, "duration": 0.0,
                        "maneuver": {"type": "arrive", "location": [13.001, 52.001]},
                    },
                ],
            }],
        }],
    }


@pytest.fixture
def ors_payload() -> Dict[str, Any]:
    return {
        "routes": [{
            "summary": {"distance": 1000.0, "duration": 100.0},
            "geometry": SAMPLE_POLYLINE,
            "segments": [{
                "steps": [
                    {"type": 11, "instruction": "Head north", "name": "-",
                     "distance": 600.0, "duration": 60.0, "way_points": [0, 1]},
                    {"type": 1, "instruction": "", "name": "Coast Road",
                     "distance": 400.0, "duration": 40.0, "way_points": [1, 2]},
                    {"type": 10, "instruction": "Arrive at destination", "name": "",
                     "distance": 0.0, "duration": 0.0, "way_points": [2, 2]},
                ],
            }],
        }],
    }


@pytest.fixture
def valhalla_payload() -> Dict[str, Any]:
    return {
        "trip": {
            "summary": {"length": 1.2, "time": 90.0},
            "legs": [{
                "shape": SAMPLE_POLYLINE,
                "maneuvers": [
                    {"type": 1, "instruction": "Drive north on Main St.", "street_names": ["Main St"],
                     "length": 0.5, "time": 30.0, "begin_shape_index": 0},
                    {"type": 15, "instruction": "", "street_names": ["Elm St"],
                     "length": 0.7, "time": 60.0, "begin_shape_index": 1},
                    {"type": 4, "instruction": "You have arrived.",
                     "length": 0.0, "time": 0.0, "begin_shape_index": 2},
                ],
            }],
        }
    }


@pytest.fixture
def sample_polyline():
    return SAMPLE_POLYLINE, SAMPLE_COORDS


@pytest.fixture
def points_factory() -> Callable[..., List[Coord]]:
    return meridian_points
