# osrm.py
# OSRM /route adapter.
# OSRM expects lon,lat in the URL and returns raw GeoJSON [lon, lat] pairs.

from typing import Any, Dict, List

from ..maneuvers import build_instruction, from_osrm
from ..models import Coord, Route, RouteStep
from .base import BackendError, RouteBackend


class OsrmBackend(RouteBackend):
    """
    OSRM HTTP adapter.

    Args:
        base_url: Server root, e.g. https://router.project-osrm.org
        profile:  Routing profile in the URL (driving, walking, cycling).
    """

    name = "osrm"

    def __init__(self, base_url: str, profile: str = "driving", **kwargs) -> None:
        super().__init__(base_url, **kwargs)
        self.profile = profile

    @staticmethod
    def format_coordinates(origin: Coord, destination: Coord) -> str:
        """Convert (lat, lon) pair to OSRM format 'lon,lat;lon,lat'."""
        return f"{origin.lon},{origin.lat};{destination.lon},{destination.lat}"

    def route_url(self, origin: Coord, destination: Coord) -> str:
        coords = self.format_coordinates(origin, destination)
        return f"{self.base_url}/route/v1/{self.profile}/{coords}"

    def _request(self, origin: Coord, destination: Coord) -> Any:
        params = {
            "overview": "full",
            "geometries": "geojson",
            "steps": "true",
            "annotations": "false",
        }
        return self._get_json(self.route_url(origin, destination), params=params)

    def _parse(self, payload: Dict[str, Any], origin: Coord, destination: Coord) -> Route:
        if payload.get("code") != "Ok":
            raise BackendError(self.name, f"OSRM error: {payload.get('message', 'Unknown error')}")

        routes = payload.get("routes") or []
        if not routes:
            raise BackendError(self.name, "no routes in response")

        route = routes[0]  # OSRM may return alternatives; first is best
        points = parse_coordinates(route["geometry"]["coordinates"])
        leg = route["legs"][0]
        steps = [self._parse_step(s) for s in leg.get("steps", [])]

        return Route(
            origin=origin,
            destination=destination,
            points=points,
            steps=steps,
            total_distance_m=float(route["distance"]),
            total_duration_s=float(route["duration"]),
            route_name=leg.get("summary") or None,
            backend=self.name,
        )

    @staticmethod
    def _parse_step(step: Dict[str, Any]) -> RouteStep:
        maneuver = step["maneuver"]
        lon, lat = maneuver["location"]
        road_name = step.get("name") or None
        kind = from_osrm(maneuver.get("type"), maneuver.get("modifier"))
        return RouteStep(
            instruction=build_instruction(kind, road_name),
            maneuver=kind,
            distance_m=float(step.get("distance", 0.0)),
            duration_s=float(step.get("duration", 0.0)),
            location=Coord(float(lat), float(lon)),
            road_name=road_name,
        )


def parse_coordinates(coordinates: List[List[float]]) -> List[Coord]:
    """GeoJSON [lon, lat] pairs → Coord list."""
    return [Coord(float(lat), float(lon)) for lon, lat in coordinates]
