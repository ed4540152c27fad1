# Turn-by-turn navigation core: route acquisition, progress tracking, rerouting.

from .backends import BackendError, RoutingError
from .listeners import NavigationListener
from .models import (
    Coord, ManeuverKind, NavigationState, NavStatus, Position, Route, RouteResult, RouteStep,
)
from .nav_config import NavConfig
from .nav_logger import NavLogger
from .navigation_engine import NavigationEngine
from .navigator import NavigationSystem
from .route_cache import RouteCache
from .route_provider import RouteProvider

__version__ = "0.1.0"

__all__ = [
    "BackendError",
    "Coord",
    "ManeuverKind",
    "NavConfig",
    "NavLogger",
    "NavStatus",
    "NavigationEngine",
    "NavigationListener",
    "NavigationState",
    "NavigationSystem",
    "Position",
    "Route",
    "RouteCache",
    "RouteProvider",
    "RouteResult",
    "RouteStep",
    "RoutingError",
]
