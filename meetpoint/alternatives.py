"""
Route summaries and synthetic alternative routes.

When a provider only returns one route, two visually plausible alternatives
are derived by shifting the main geometry (more in the middle of the route
than at its ends) and adding a little jitter. They are presentational
stand-ins, not routable paths, and their distance/duration are scaled from
the main route rather than measured.
"""

import random
from typing import List, Optional, Sequence

from .geodesy import format_duration, format_route_distance, haversine_distance
from .models import Coordinate, Polyline, RawRoute, Route, RouteSet
from .route_midpoint import find_route_midpoint

# (offset degrees, distance scale, duration scale) per synthetic alternative
SYNTHETIC_ALTERNATIVES = (
    (0.001, 1.2, 1.1),
    (-0.0015, 1.3, 1.2),
)
MIDDLE_WINDOW = (0.3, 0.7)
EDGE_OFFSET_SCALE = 0.3
JITTER_DEGREES = 0.001  # total width, i.e. +/-0.0005
MAX_ALTERNATIVES = 2
STRAIGHT_LINE_SPEED_KMH = 66.0


def _clamp_lat(lat: float) -> float:
    return min(max(lat, -90.0), 90.0)


def _wrap_lng(lng: float) -> float:
    if -180.0 <= lng <= 180.0:
        return lng
    return ((lng + 180.0) % 360.0) - 180.0


def derive_alternative(points: Polyline, offset: float, rng: Optional[random.Random] = None) -> List[Coordinate]:
    """
    Shift every point of ``points`` by ``offset`` degrees on both axes.

    Points whose index fraction lies strictly inside MIDDLE_WINDOW get the
    full offset, the rest EDGE_OFFSET_SCALE of it. One uniform jitter value
    per point is drawn from ``rng`` and added to both axes.
    """
    rng = rng or random.Random()
    n = len(points)
    low, high = MIDDLE_WINDOW
    shifted = []
    for index, point in enumerate(points):
        middle = n * low < index < n * high
        variation = offset if middle else offset * EDGE_OFFSET_SCALE
        jitter = (rng.random() - 0.5) * JITTER_DEGREES
        shifted.append(Coordinate(
            _clamp_lat(point.lat + variation + jitter),
            _wrap_lng(point.lng + variation + jitter),
        ))
    return shifted


def summarize_route(distance_m: float, duration_s: float, geometry: Optional[Polyline]) -> Route:
    """Format a measured route and attach the midpoint of its geometry, if any."""
    if not geometry:
        return Route(format_route_distance(distance_m), format_duration(duration_s))
    geometry = tuple(geometry)
    return Route(
        distance=format_route_distance(distance_m),
        duration=format_duration(duration_s),
        geometry=geometry,
        route_midpoint=find_route_midpoint(geometry),
    )


def build_route_set(
    primary: RawRoute,
    alternatives: Sequence[RawRoute] = (),
    rng: Optional[random.Random] = None,
) -> RouteSet:
    """Main route plus up to two alternatives, real ones preferred over synthetic."""
    main = summarize_route(primary.distance_m, primary.duration_s, primary.geometry)

    if alternatives:
        alts = [summarize_route(r.distance_m, r.duration_s, r.geometry) for r in alternatives[:MAX_ALTERNATIVES]]
        return RouteSet(main=main, alternatives=tuple(alts))

    rng = rng or random.Random()
    alts = []
    for offset, distance_scale, duration_scale in SYNTHETIC_ALTERNATIVES:
        geometry = derive_alternative(primary.geometry, offset, rng) if primary.geometry else None
        alts.append(summarize_route(
            primary.distance_m * distance_scale,
            primary.duration_s * duration_scale,
            geometry,
        ))
    return RouteSet(main=main, alternatives=tuple(alts))


def straight_line_route_set(a: Coordinate, b: Coordinate) -> RouteSet:
    """Summary used when no route could be found: crow-flies distance, estimated time."""
    distance_m = haversine_distance(a, b)
    duration_s = distance_m / 1000.0 / STRAIGHT_LINE_SPEED_KMH * 3600.0
    return RouteSet(main=Route(format_route_distance(distance_m), format_duration(duration_s)))
