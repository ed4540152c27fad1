# valhalla.py
# Valhalla /route adapter.
# Shape is an encoded polyline at precision 6; lengths come back in kilometres.

from typing import Any, Dict, List

from ..maneuvers import build_instruction, from_valhalla
from ..models import Coord, Route, RouteStep
from ..polyline import decode_polyline
from .base import BackendError, RouteBackend

VALHALLA_POLYLINE_PRECISION = 6


class ValhallaBackend(RouteBackend):
    """
    Valhalla HTTP adapter.

    Args:
        base_url: Route endpoint, e.g. https://valhalla1.openstreetmap.de/route
        costing:  Valhalla costing model.
        language: Narrative language.
    """

    name = "valhalla"

    def __init__(self, base_url: str, costing: str = "auto", language: str = "en", **kwargs) -> None:
        super().__init__(base_url, **kwargs)
        self.costing = costing
        self.language = language

    def build_body(self, origin: Coord, destination: Coord) -> Dict[str, Any]:
        return {
            "locations": [
                {"lat": origin.lat, "lon": origin.lon},
                {"lat": destination.lat, "lon": destination.lon},
            ],
            "costing": self.costing,
            "directions_options": {"language": self.language, "units": "kilometers"},
        }

    def _request(self, origin: Coord, destination: Coord) -> Any:
        return self._post_json(self.base_url, self.build_body(origin, destination))

    def _parse(self, payload: Dict[str, Any], origin: Coord, destination: Coord) -> Route:
        if "error" in payload:
            raise BackendError(self.name, f"Valhalla error: {payload['error']}")

        trip = payload.get("trip")
        if not trip or not trip.get("legs"):
            raise BackendError(self.name, "no trip in response")

        leg = trip["legs"][0]
        points = decode_polyline(leg["shape"], VALHALLA_POLYLINE_PRECISION)
        summary = trip.get("summary") or leg.get("summary") or {}
        steps = [self._parse_maneuver(m, points, origin) for m in leg.get("maneuvers", [])]

        return Route(
            origin=origin,
            destination=destination,
            points=points,
            steps=steps,
            total_distance_m=float(summary.get("length", 0.0)) * 1000,  # km → m
            total_duration_s=float(summary.get("time", 0.0)),
            backend=self.name,
        )

    @staticmethod
    def _parse_maneuver(m: Dict[str, Any], points: List[Coord], origin: Coord) -> RouteStep:
        kind = from_valhalla(m.get("type"))
        street_names = m.get("street_names") or []
        road_name = street_names[0] if street_names else None

        index = int(m.get("begin_shape_index", 0))
        location = points[index] if 0 <= index < len(points) else origin

        return RouteStep(
            instruction=m.get("instruction") or build_instruction(kind, road_name),
            maneuver=kind,
            distance_m=float(m.get("length", 0.0)) * 1000,
            duration_s=float(m.get("time", 0.0)),
            location=location,
            road_name=road_name,
        )
