# nav_config.py
# All tuneable constants in one place.
# Pass a NavConfig instance to every module that needs settings.

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv


# ---------------------------------------------------------------------------
# Backend defaults
# ---------------------------------------------------------------------------

OSRM_PUBLIC_URL: str = "https://router.project-osrm.org"
ORS_DIRECTIONS_URL: str = "https://api.openrouteservice.org/v2/directions/driving-car"
VALHALLA_PUBLIC_URL: str = "https://valhalla1.openstreetmap.de/route"

DEFAULT_BACKEND_ORDER: Tuple[str, ...] = ("osrm", "ors", "valhalla")

DEFAULT_CRUISE_SPEED_MS: float = 16.67  # ~60 km/h, used when a route has no duration


# ---------------------------------------------------------------------------
# Main config
# ---------------------------------------------------------------------------

@dataclass
class NavConfig:
    # Off-route detection and rerouting throttle
    off_route_threshold_m: float = 30.0
    min_recalc_interval_s: float = 1.0         # time gate
    min_recalc_distance_m: float = 10.0        # distance gate
    recalc_cooldown_s: float = 2.0             # absolute safety net

    # Step progression
    maneuver_arrival_threshold_m: float = 8.0  # ahead edge of the arrival window
    maneuver_passed_threshold_m: float = 20.0  # behind edge of the arrival window
    auto_advance_behind_m: float = 30.0        # anchor this far behind → skip step
    min_valid_step_distance_m: float = 5.0     # below this, a 0 m reading is noise

    # Maneuver completion heuristic
    completion_min_progress: float = 0.1
    completion_confirm_progress: float = 0.3
    completion_remaining_fraction: float = 0.7
    completion_lookahead_points: int = 5
    completion_lookahead_radius_m: float = 15.0

    # Arrival
    destination_arrival_threshold_m: float = 5.0
    arrival_remaining_epsilon_m: float = 1.0
    default_cruise_speed_ms: float = DEFAULT_CRUISE_SPEED_MS

    # Route cache
    cache_ttl_s: float = 300.0
    cache_max_size: int = 20

    # Backends
    backend_order: Tuple[str, ...] = DEFAULT_BACKEND_ORDER
    osrm_urls: Tuple[str, ...] = (OSRM_PUBLIC_URL,)
    osrm_profile: str = "driving"
    ors_url: str = ORS_DIRECTIONS_URL
    ors_api_key: Optional[str] = None
    valhalla_url: str = VALHALLA_PUBLIC_URL
    language: str = "en"
    user_agent: str = "turnbyturn/0.1"
    connect_timeout_s: float = 3.0
    read_timeout_s: float = 3.0

    # Logging
    log_dir: Optional[str] = None              # None disables NavLogger files
    route_filename: str = "active_route.json"
    session_filename: str = "nav_session.jsonl"
    log_every_n_updates: int = 5

    @property
    def timeout(self) -> Tuple[float, float]:
        return (self.connect_timeout_s, self.read_timeout_s)

    @property
    def route_filepath(self) -> str:
        return os.path.join(self.log_dir or ".", self.route_filename)

    @property
    def session_filepath(self) -> str:
        return os.path.join(self.log_dir or ".", self.session_filename)

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None, **overrides) -> "NavConfig":
        """
        Build a config from environment variables (and a .env file if present).

        Recognised variables:
            ORS_API_KEY, OSRM_BASE_URLS (comma separated), ORS_URL,
            VALHALLA_URL, NAV_BACKENDS (comma separated), NAV_LOG_DIR,
            NAV_LANGUAGE.

        Args:
            dotenv_path: Explicit .env path; searched upwards when omitted.
            overrides:   Field values that win over the environment.

        Returns:
            NavConfig instance.
        """
        load_dotenv(dotenv_path)
        values = {}

        if os.getenv("ORS_API_KEY"):
            values["ors_api_key"] = os.getenv("ORS_API_KEY")
        if os.getenv("OSRM_BASE_URLS"):
            values["osrm_urls"] = _split_list(os.getenv("OSRM_BASE_URLS"))
        if os.getenv("ORS_URL"):
            values["ors_url"] = os.getenv("ORS_URL")
        if os.getenv("VALHALLA_URL"):
            values["valhalla_url"] = os.getenv("VALHALLA_URL")
        if os.getenv("NAV_BACKENDS"):
            values["backend_order"] = tuple(b.lower() for b in _split_list(os.getenv("NAV_BACKENDS")))
        if os.getenv("NAV_LOG_DIR"):
            values["log_dir"] = os.getenv("NAV_LOG_DIR")
        if os.getenv("NAV_LANGUAGE"):
            values["language"] = os.getenv("NAV_LANGUAGE")

        values.update(overrides)
        return cls(**values)


def _split_list(raw: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())
