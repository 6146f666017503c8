"""
Spherical geometry helpers: great-circle midpoint, haversine distance and
the distance/duration strings shown to users.

All distances derive from one meters-based haversine; kilometer and mile
variants are unit conversions of it.
"""

import math

from .models import Coordinate

# --- Module-level constants ---
EARTH_RADIUS_M = 6371000.0
METERS_PER_KM = 1000.0
METERS_PER_MILE = 1609.344


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_midpoint(a: Coordinate, b: Coordinate) -> Coordinate:
    """
    Great-circle midpoint of two coordinates.

    Both points are projected onto the unit sphere as Cartesian vectors, the
    vectors are averaged and the mean is converted back to latitude/longitude.
    For antipodal points the mean vector is (close to) zero and the result is
    not meaningful.
    """
    lat1, lng1 = math.radians(a.lat), math.radians(a.lng)
    lat2, lng2 = math.radians(b.lat), math.radians(b.lng)

    x = (math.cos(lat1) * math.cos(lng1) + math.cos(lat2) * math.cos(lng2)) / 2
    y = (math.cos(lat1) * math.sin(lng1) + math.cos(lat2) * math.sin(lng2)) / 2
    z = (math.sin(lat1) + math.sin(lat2)) / 2

    lng = math.atan2(y, x)
    hyp = math.sqrt(x * x + y * y)
    lat = math.atan2(z, hyp)

    return Coordinate(math.degrees(lat), math.degrees(lng))


def haversine_distance(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in meters"""
    lat1, lng1 = math.radians(a.lat), math.radians(a.lng)
    lat2, lng2 = math.radians(b.lat), math.radians(b.lng)
    dlat = lat2 - lat1
    dlng = lng2 - lng1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_M * c


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    return haversine_distance(a, b) / METERS_PER_KM


def haversine_miles(a: Coordinate, b: Coordinate) -> float:
    return haversine_distance(a, b) / METERS_PER_MILE


def format_distance(meters: float) -> str:
    """'250 meters' below one kilometer, '3.2 km' from there on"""
    if meters < METERS_PER_KM:
        return f"{_round_half_up(meters)} meters"
    return f"{meters / METERS_PER_KM:.1f} km"


def format_route_distance(meters: float) -> str:
    """Route summaries are always given in kilometers"""
    return f"{meters / METERS_PER_KM:.1f} km"


def format_duration(seconds: float) -> str:
    return f"{_round_half_up(seconds / 60)} mins"
