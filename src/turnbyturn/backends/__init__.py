# Routing backend adapters. Each one maps a single service's wire format onto Route.

from typing import List, Optional

import requests

from ..nav_config import NavConfig
from .base import BackendError, RouteBackend, RoutingError
from .ors import OrsBackend
from .osrm import OsrmBackend
from .valhalla import ValhallaBackend


def build_backends(config: NavConfig, session: Optional[requests.Session] = None) -> List[RouteBackend]:
    """
    Instantiate backends in config.backend_order.

    Every configured OSRM server becomes its own backend, tried in the order
    listed. Unknown names raise ValueError.
    """
    session = session or requests.Session()
    common = dict(timeout=config.timeout, session=session, user_agent=config.user_agent)
    backends: List[RouteBackend] = []

    for name in config.backend_order:
        if name == "osrm":
            backends.extend(OsrmBackend(url, profile=config.osrm_profile, **common) for url in config.osrm_urls)
        elif name == "ors":
            backends.append(OrsBackend(config.ors_url, api_key=config.ors_api_key,
                                       language=config.language, **common))
        elif name == "valhalla":
            backends.append(ValhallaBackend(config.valhalla_url, language=config.language, **common))
        else:
            raise ValueError(f"Unknown routing backend: {name!r}")
    return backends


__all__ = [
    "BackendError",
    "RoutingError",
    "RouteBackend",
    "OsrmBackend",
    "OrsBackend",
    "ValhallaBackend",
    "build_backends",
]
