# ors.py
# OpenRouteService directions adapter.
# POST JSON with an API-key header; geometry is an encoded polyline (precision 5).

from typing import Any, Dict, List, Optional

from ..maneuvers import build_instruction, from_ors
from ..models import Coord, Route, RouteStep
from ..polyline import decode_polyline
from .base import BackendError, RouteBackend


ORS_POLYLINE_PRECISION = 5


class OrsBackend(RouteBackend):
    """
    OpenRouteService HTTP adapter.

    Args:
        base_url: Directions endpoint including the profile.
        api_key:  ORS key; the backend reports itself unavailable without one.
        language: Instruction language.
    """

    name = "ors"

    def __init__(self, base_url: str, api_key: Optional[str] = None, language: str = "en", **kwargs) -> None:
        super().__init__(base_url, **kwargs)
        self.api_key = api_key
        self.language = language

    @property
    def is_available(self) -> bool:
        return bool(self.api_key)

    def build_body(self, origin: Coord, destination: Coord) -> Dict[str, Any]:
        # ORS expects [lon, lat]
        return {
            "coordinates": [[origin.lon, origin.lat], [destination.lon, destination.lat]],
            "instructions": True,
            "units": "m",
            "preference": "recommended",
            "language": self.language,
        }

    def _request(self, origin: Coord, destination: Coord) -> Any:
        if not self.api_key:
            raise BackendError(self.name, "API key not configured")
        return self._post_json(
            self.base_url,
            self.build_body(origin, destination),
            headers={"Authorization": self.api_key},
        )

    def _parse(self, payload: Dict[str, Any], origin: Coord, destination: Coord) -> Route:
        if "error" in payload:
            error = payload["error"]
            message = error.get("message") if isinstance(error, dict) else error
            raise BackendError(self.name, f"ORS error: {message}")

        routes = payload.get("routes") or []
        if not routes:
            raise BackendError(self.name, "no routes in response")

        route = routes[0]
        summary = route.get("summary", {})
        points = decode_polyline(route["geometry"], ORS_POLYLINE_PRECISION)

        steps: List[RouteStep] = []
        for segment in route.get("segments", []):
            for step in segment.get("steps", []):
                steps.append(self._parse_step(step, points, origin))

        return Route(
            origin=origin,
            destination=destination,
            points=points,
            steps=steps,
            total_distance_m=float(summary.get("distance", 0.0)),
            total_duration_s=float(summary.get("duration", 0.0)),
            backend=self.name,
        )

    @staticmethod
    def _parse_step(step: Dict[str, Any], points: List[Coord], origin: Coord) -> RouteStep:
        kind = from_ors(step.get("type"))
        road_name = (step.get("name") or "").strip() or None
        if road_name == "-":
            road_name = None

        # way_points[0] indexes into the decoded geometry
        way_points = step.get("way_points") or [0]
        index = int(way_points[0])
        location = points[index] if 0 <= index < len(points) else origin

        return RouteStep(
            instruction=step.get("instruction") or build_instruction(kind, road_name),
            maneuver=kind,
            distance_m=float(step.get("distance", 0.0)),
            duration_s=float(step.get("duration", 0.0)),
            location=location,
            road_name=road_name,
        )
