# geo_utils.py
# Pure mathematical / geographic helper functions.
# No side effects; only models is imported from this project.

import math
from typing import Sequence

import numpy as np

from .models import Coord


EARTH_RADIUS_M = 6_371_000.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in metres.

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Distance in metres.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance(a: Coord, b: Coord) -> float:
    """Haversine distance between two coordinates in metres."""
    return haversine_distance(a.lat, a.lon, b.lat, b.lon)


def calculate_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Forward azimuth (bearing) from point 1 to point 2 in degrees [0, 360).

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Bearing in degrees.
    """
    rlat1, rlon1 = math.radians(lat1), math.radians(lon1)
    rlat2, rlon2 = math.radians(lat2), math.radians(lon2)
    d_lon = rlon2 - rlon1
    y = math.sin(d_lon) * math.cos(rlat2)
    x = math.cos(rlat1) * math.sin(rlat2) - math.sin(rlat1) * math.cos(rlat2) * math.cos(d_lon)
    return (math.degrees(math.atan2(y, x)) + 360) % 360


# ---------------------------------------------------------------------------
# Polyline helpers (vectorised)
# ---------------------------------------------------------------------------

def _as_array(polyline: Sequence[Coord]) -> np.ndarray:
    return np.array([(p.lat, p.lon) for p in polyline], dtype=float).reshape(-1, 2)


def _haversine_many(lat: float, lon: float, lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
    """Distance from one point to each of lats/lons, in metres."""
    d_lat = np.radians(lats - lat)
    d_lon = np.radians(lons - lon)
    a = (
        np.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat)) * np.cos(np.radians(lats)) * np.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


def _segment_lengths(points: np.ndarray) -> np.ndarray:
    """Length of every consecutive segment (n - 1 values)."""
    if len(points) < 2:
        return np.zeros(0)
    lat1, lon1 = points[:-1, 0], points[:-1, 1]
    lat2, lon2 = points[1:, 0], points[1:, 1]
    d_lat = np.radians(lat2 - lat1)
    d_lon = np.radians(lon2 - lon1)
    a = (
        np.sin(d_lat / 2) ** 2
        + np.cos(np.radians(lat1)) * np.cos(np.radians(lat2)) * np.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


def nearest_index(point: Coord, polyline: Sequence[Coord]) -> int:
    """
    Index of the polyline vertex closest to point.

    A linear scan; ties resolve to the lowest index.

    Raises:
        ValueError: polyline is empty.
    """
    if len(polyline) == 0:
        raise ValueError("Cannot project onto an empty polyline.")
    points = _as_array(polyline)
    dists = _haversine_many(point.lat, point.lon, points[:, 0], points[:, 1])
    return int(np.argmin(dists))


def distance_to_route(point: Coord, polyline: Sequence[Coord]) -> float:
    """Distance from point to the nearest polyline vertex (0 for an empty polyline)."""
    if len(polyline) == 0:
        return 0.0
    return distance(point, polyline[nearest_index(point, polyline)])


def path_length(polyline: Sequence[Coord], start: int = 0, end: int = -1) -> float:
    """Sum of segment lengths from vertex start to vertex end (end inclusive)."""
    if len(polyline) < 2:
        return 0.0
    if end < 0:
        end = len(polyline) + end
    if end <= start:
        return 0.0
    lengths = _segment_lengths(_as_array(polyline[start:end + 1]))
    return float(lengths.sum())


def distance_along_route(from_point: Coord, to_point: Coord, polyline: Sequence[Coord]) -> float:
    """
    Signed distance along the polyline between two projected points.

    Both points are projected with nearest_index(). The result is positive
    when to_point lies ahead of from_point, negative when it lies behind and
    0 when both project onto the same vertex.

    Args:
        from_point: Usually the vehicle position.
        to_point:   Usually a maneuver anchor.
        polyline:   Route geometry.

    Returns:
        Signed distance in metres; 0 for polylines with fewer than 2 points.
    """
    if len(polyline) < 2:
        return 0.0
    from_idx = nearest_index(from_point, polyline)
    to_idx = nearest_index(to_point, polyline)
    if to_idx == from_idx:
        return 0.0
    if to_idx < from_idx:
        return -path_length(polyline, to_idx, from_idx)
    return path_length(polyline, from_idx, to_idx)


def remaining_distance(point: Coord, polyline: Sequence[Coord]) -> float:
    """Route length from the projection of point to the end of the polyline."""
    if len(polyline) < 2:
        return 0.0
    return path_length(polyline, nearest_index(point, polyline), len(polyline) - 1)


def mean_distance(point: Coord, polyline: Sequence[Coord]) -> float:
    """Average distance from point to each vertex in polyline."""
    if len(polyline) == 0:
        return 0.0
    points = _as_array(polyline)
    return float(_haversine_many(point.lat, point.lon, points[:, 0], points[:, 1]).mean())
