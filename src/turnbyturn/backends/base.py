# base.py
# Common plumbing for routing backend adapters.
# An adapter turns (origin, destination) into a canonical Route or raises BackendError.

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

import requests

from ..models import Coord, Route

logger = logging.getLogger(__name__)


class RoutingError(Exception):
    """Base class for routing failures."""
    pass


class BackendError(RoutingError):
    """A single backend could not produce a usable route."""

    def __init__(self, backend: str, message: str) -> None:
        super().__init__(f"{backend}: {message}")
        self.backend = backend
        self.message = message


class RouteBackend(ABC):
    """
    One routing service with its own request/response mapping.

    Subclasses implement _request() (wire call, returns decoded JSON) and
    _parse() (JSON → Route). fetch_route() wraps both and converts every
    transport or shape problem into BackendError.

    Args:
        base_url:   Service endpoint.
        timeout:    (connect, read) timeout in seconds.
        session:    requests.Session-like object; a new Session when omitted.
        user_agent: Sent with every request.
    """

    name: str = "backend"

    def __init__(
        self,
        base_url: str,
        timeout: Tuple[float, float] = (3.0, 3.0),
        session: Optional[requests.Session] = None,
        user_agent: str = "turnbyturn/0.1",
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.user_agent = user_agent

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} {self.base_url}>"

    @property
    def is_available(self) -> bool:
        """False when the backend is missing required configuration."""
        return True

    @property
    def headers(self) -> Dict[str, str]:
        return {"Accept": "application/json", "User-Agent": self.user_agent}

    # ------------------------------------------------------------------
    # Public
    # ------------------------------------------------------------------

    def fetch_route(self, origin: Coord, destination: Coord) -> Route:
        """
        Request and normalise a route.

        Raises:
            BackendError: timeout, HTTP error, malformed JSON, backend error
                          payload or unusable route data.
        """
        try:
            payload = self._request(origin, destination)
        except requests.Timeout as e:
            raise BackendError(self.name, f"timed out ({e})") from e
        except ValueError as e:
            raise BackendError(self.name, f"malformed JSON response ({e})") from e
        except requests.RequestException as e:
            raise BackendError(self.name, f"request failed ({e})") from e

        if not isinstance(payload, dict):
            raise BackendError(self.name, "unexpected response shape")

        try:
            route = self._parse(payload, origin, destination)
        except BackendError:
            raise
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise BackendError(self.name, f"malformed route data ({e!r})") from e

        if len(route.points) < 2:
            raise BackendError(self.name, f"route has {len(route.points)} point(s)")
        if not route.steps:
            raise BackendError(self.name, "route has no steps")
        return route

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = self.session.get(url, params=params, headers=self.headers, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def _post_json(self, url: str, body: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> Any:
        merged = dict(self.headers)
        merged["Content-Type"] = "application/json"
        if headers:
            merged.update(headers)
        response = self.session.post(url, json=body, headers=merged, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    @abstractmethod
    def _request(self, origin: Coord, destination: Coord) -> Any:
        ...

    @abstractmethod
    def _parse(self, payload: Dict[str, Any], origin: Coord, destination: Coord) -> Route:
        ...
