"""Locate points along a route polyline by cumulative travel distance."""

from typing import List, Tuple

from .exceptions import InvalidGeometryError
from .geodesy import haversine_distance
from .models import Coordinate, Polyline


def _interpolate_point(p1: Coordinate, p2: Coordinate, frac: float) -> Coordinate:
    return Coordinate(
        p1.lat + (p2.lat - p1.lat) * frac,
        p1.lng + (p2.lng - p1.lng) * frac,
    )


def segment_lengths(points: Polyline) -> List[float]:
    """Haversine length (meters) of each consecutive pair; n points give n-1 lengths."""
    return [haversine_distance(points[i], points[i + 1]) for i in range(len(points) - 1)]


def cumulative_distances(points: Polyline) -> Tuple[List[float], float]:
    """Return cumulative distances (meters) for each vertex and total length."""
    if not points:
        return [], 0.0
    cum = [0.0]
    total = 0.0
    for length in segment_lengths(points):
        total += length
        cum.append(total)
    return cum, total


def polyline_length(points: Polyline) -> float:
    return cumulative_distances(points)[1]


def point_at_fraction(points: Polyline, frac: float) -> Coordinate:
    """
    Return the point at ``frac`` (0..1, clamped) of the polyline's total length.

    The first segment whose end reaches or passes the target distance is the
    one interpolated in; inside it the position is a planar linear
    interpolation of latitude and longitude, which is accurate enough for
    route-scale segments.
    """
    if not points:
        raise InvalidGeometryError("Cannot locate a point on an empty polyline")
    if len(points) == 1:
        return points[0]

    frac = min(max(frac, 0.0), 1.0)
    cum, total = cumulative_distances(points)
    target = frac * total
    for i in range(len(cum) - 1):
        if cum[i + 1] >= target:
            seg_len = cum[i + 1] - cum[i]
            inner = 0.0 if seg_len == 0 else (target - cum[i]) / seg_len
            return _interpolate_point(points[i], points[i + 1], inner)
    # Floating point can leave the target just past the last vertex
    return points[-1]


def find_route_midpoint(points: Polyline) -> Coordinate:
    """The point splitting the route's cumulative length in half"""
    return point_at_fraction(points, 0.5)
