# models.py
# Shared data structures and enums used across all modules.

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


# ---------------------------------------------------------------------------
# Coordinate / position
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Coord:
    """Immutable geographic coordinate (WGS-84 degrees)."""
    lat: float
    lon: float

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lon": self.lon}

    @staticmethod
    def from_dict(d: dict) -> "Coord":
        return Coord(float(d["lat"]), float(d["lon"]))


@dataclass(frozen=True)
class Position:
    """A single fix from the vehicle position feed."""
    coord: Coord
    bearing: float = 0.0         # degrees, 0-360
    speed_kmh: float = 0.0
    timestamp: float = 0.0       # unix seconds


# ---------------------------------------------------------------------------
# Maneuvers
# ---------------------------------------------------------------------------

class ManeuverKind(Enum):
    DEPART                 = "depart"
    ARRIVE                 = "arrive"
    TURN_LEFT              = "turn_left"
    TURN_RIGHT             = "turn_right"
    TURN_SLIGHT_LEFT       = "turn_slight_left"
    TURN_SLIGHT_RIGHT      = "turn_slight_right"
    TURN_SHARP_LEFT        = "turn_sharp_left"
    TURN_SHARP_RIGHT       = "turn_sharp_right"
    STRAIGHT               = "straight"
    ROUNDABOUT             = "roundabout"
    ROUNDABOUT_LEFT        = "roundabout_left"
    ROUNDABOUT_RIGHT       = "roundabout_right"
    ROUNDABOUT_STRAIGHT    = "roundabout_straight"
    ROUNDABOUT_SHARP_LEFT  = "roundabout_sharp_left"
    ROUNDABOUT_SHARP_RIGHT = "roundabout_sharp_right"
    ROUNDABOUT_SLIGHT_LEFT = "roundabout_slight_left"
    ROUNDABOUT_SLIGHT_RIGHT = "roundabout_slight_right"
    ROUNDABOUT_EXIT        = "roundabout_exit"
    UTURN                  = "uturn"
    MERGE                  = "merge"
    MERGE_LEFT             = "merge_left"
    MERGE_RIGHT            = "merge_right"
    MERGE_SLIGHT_LEFT      = "merge_slight_left"
    MERGE_SLIGHT_RIGHT     = "merge_slight_right"
    ON_RAMP                = "on_ramp"
    OFF_RAMP               = "off_ramp"
    FORK_LEFT              = "fork_left"
    FORK_RIGHT             = "fork_right"
    FORK_SLIGHT_LEFT       = "fork_slight_left"
    FORK_SLIGHT_RIGHT      = "fork_slight_right"
    CONTINUE               = "continue"
    CONTINUE_LEFT          = "continue_left"
    CONTINUE_RIGHT         = "continue_right"
    CONTINUE_SLIGHT_LEFT   = "continue_slight_left"
    CONTINUE_SLIGHT_RIGHT  = "continue_slight_right"
    CONTINUE_STRAIGHT      = "continue_straight"
    CONTINUE_UTURN         = "continue_uturn"
    END_OF_ROAD_LEFT       = "end_of_road_left"
    END_OF_ROAD_RIGHT      = "end_of_road_right"
    NEW_NAME_LEFT          = "new_name_left"
    NEW_NAME_RIGHT         = "new_name_right"
    NEW_NAME_STRAIGHT      = "new_name_straight"
    NOTIFICATION_LEFT      = "notification_left"
    NOTIFICATION_RIGHT     = "notification_right"
    NOTIFICATION_STRAIGHT  = "notification_straight"
    UNKNOWN                = "unknown"


# ---------------------------------------------------------------------------
# Route
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RouteStep:
    """A single turn-by-turn instruction anchored on the route polyline."""
    instruction: str
    maneuver: ManeuverKind
    distance_m: float            # length of this step
    duration_s: float            # duration of this step
    location: Coord              # where the maneuver happens
    road_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "instruction": self.instruction,
            "maneuver": self.maneuver.value,
            "distance_m": self.distance_m,
            "duration_s": self.duration_s,
            "location": self.location.to_dict(),
            "road_name": self.road_name,
        }

    @staticmethod
    def from_dict(d: dict) -> "RouteStep":
        return RouteStep(
            instruction=d["instruction"],
            maneuver=ManeuverKind(d["maneuver"]),
            distance_m=float(d["distance_m"]),
            duration_s=float(d["duration_s"]),
            location=Coord.from_dict(d["location"]),
            road_name=d.get("road_name"),
        )


@dataclass(frozen=True)
class Route:
    """A complete route: polyline for progress math plus its ordered steps."""
    origin: Coord
    destination: Coord
    points: Tuple[Coord, ...]
    steps: Tuple[RouteStep, ...]
    total_distance_m: float
    total_duration_s: float
    route_name: Optional[str] = None
    backend: Optional[str] = None

    def __post_init__(self) -> None:
        # Accept lists from parsers, store tuples so the route stays immutable.
        object.__setattr__(self, "points", tuple(self.points))
        object.__setattr__(self, "steps", tuple(self.steps))

    @property
    def is_valid(self) -> bool:
        return len(self.points) >= 2 and len(self.steps) > 0

    def average_speed_ms(self, default: float) -> float:
        if self.total_duration_s > 0:
            return self.total_distance_m / self.total_duration_s
        return default

    def to_dict(self) -> dict:
        return {
            "origin": self.origin.to_dict(),
            "destination": self.destination.to_dict(),
            "points": [[p.lat, p.lon] for p in self.points],
            "steps": [s.to_dict() for s in self.steps],
            "total_distance_m": self.total_distance_m,
            "total_duration_s": self.total_duration_s,
            "route_name": self.route_name,
            "backend": self.backend,
        }

    @staticmethod
    def from_dict(d: dict) -> "Route":
        return Route(
            origin=Coord.from_dict(d["origin"]),
            destination=Coord.from_dict(d["destination"]),
            points=tuple(Coord(float(lat), float(lon)) for lat, lon in d["points"]),
            steps=tuple(RouteStep.from_dict(s) for s in d["steps"]),
            total_distance_m=float(d["total_distance_m"]),
            total_duration_s=float(d["total_duration_s"]),
            route_name=d.get("route_name"),
            backend=d.get("backend"),
        )


@dataclass(frozen=True)
class RouteResult:
    """Outcome of a route request: a route, or the last error message."""
    route: Optional[Route] = None
    error: Optional[str] = None
    backend: Optional[str] = None
    from_cache: bool = field(default=False, compare=False)

    @property
    def ok(self) -> bool:
        return self.route is not None


# ---------------------------------------------------------------------------
# Navigation state
# ---------------------------------------------------------------------------

class NavStatus(Enum):
    IDLE        = "idle"
    CALCULATING = "calculating"
    NAVIGATING  = "navigating"
    REROUTING   = "rerouting"
    ARRIVED     = "arrived"


@dataclass(frozen=True)
class NavigationState:
    """Snapshot of a navigation session. Replaced, never mutated in place."""
    status: NavStatus = NavStatus.IDLE
    route: Optional[Route] = None
    current_step_index: int = 0
    remaining_distance_m: float = 0.0
    remaining_duration_s: float = 0.0
    distance_to_next_step_m: float = 0.0
    current_position: Optional[Position] = None

    @property
    def is_navigating(self) -> bool:
        return self.status in (NavStatus.NAVIGATING, NavStatus.REROUTING)

    @property
    def current_step(self) -> Optional[RouteStep]:
        if self.route and 0 <= self.current_step_index < len(self.route.steps):
            return self.route.steps[self.current_step_index]
        return None

    @property
    def next_step(self) -> Optional[RouteStep]:
        if self.route and 0 <= self.current_step_index + 1 < len(self.route.steps):
            return self.route.steps[self.current_step_index + 1]
        return None

    def format_remaining_distance(self) -> str:
        return _format_distance(self.remaining_distance_m)

    def format_distance_to_next_step(self) -> str:
        return _format_distance(self.distance_to_next_step_m)

    def format_remaining_duration(self) -> str:
        minutes = int(self.remaining_duration_s // 60)
        if minutes >= 60:
            return f"{minutes // 60}h {minutes % 60}min"
        return f"{minutes} min"

    def to_dict(self) -> dict:
        step = self.current_step
        pos = self.current_position
        return {
            "status": self.status.value,
            "step_index": self.current_step_index,
            "instruction": step.instruction if step else None,
            "remaining_distance_m": round(self.remaining_distance_m, 1),
            "remaining_duration_s": round(self.remaining_duration_s, 1),
            "distance_to_next_step_m": round(self.distance_to_next_step_m, 1),
            "lat": pos.coord.lat if pos else None,
            "lon": pos.coord.lon if pos else None,
        }


def _format_distance(meters: float) -> str:
    if meters >= 1000:
        return f"{meters / 1000:.1f} km"
    return f"{meters:.0f} m"


@dataclass(frozen=True)
class ThrottleState:
    """Reroute gate bookkeeping, owned by NavigationEngine."""
    last_attempt_time: Optional[float] = None
    last_attempt_coord: Optional[Coord] = None
    last_completed_time: Optional[float] = None


