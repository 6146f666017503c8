"""Meet in the Middle: route-aware midpoints and the places around them."""

from .geodesy import calculate_midpoint, format_distance, haversine_distance
from .midpoint import MidpointFinder, SearchSession, search_radius_for
from .models import Coordinate, Location, MidpointResult, Place, Route, RouteSet
from .places import Category, classify
from .route_midpoint import find_route_midpoint

__all__ = [
    "Category",
    "Coordinate",
    "Location",
    "MidpointFinder",
    "MidpointResult",
    "Place",
    "Route",
    "RouteSet",
    "SearchSession",
    "calculate_midpoint",
    "classify",
    "find_route_midpoint",
    "format_distance",
    "haversine_distance",
    "search_radius_for",
]
