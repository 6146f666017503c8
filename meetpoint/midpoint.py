"""
Find-midpoint orchestration.

Combines the geometry helpers with the maps provider: resolve both endpoints,
prefer the midpoint along the driving route, fall back to the great-circle
midpoint, then look up the midpoint's address and the places around it.
Only missing input is fatal; every provider failure degrades to a fallback.
"""

import asyncio
import logging
import random
import threading
from typing import Awaitable, List, Optional, Tuple, Type

from .alternatives import build_route_set, straight_line_route_set
from .exceptions import (
    GeocodingFailure,
    LocationNotFoundError,
    MissingLocationError,
    PlaceSearchFailure,
    ProviderError,
    RoutingFailure,
    SupersededSearchError,
)
from .geodesy import calculate_midpoint, haversine_distance, haversine_miles
from .maps_service import MapsService
from .models import Coordinate, Location, Midpoint, MidpointResult, Place, RouteSet
from .places import annotate_place

logger = logging.getLogger(__name__)

# --- Module-level constants ---
SEARCH_RADIUS_THRESHOLD_MILES = 50.0
NEAR_SEARCH_RADIUS_M = 4828    # ~3 miles
FAR_SEARCH_RADIUS_M = 11265    # ~7 miles
UNKNOWN_ADDRESS = "Unknown location"
DEFAULT_TIMEOUT_S = 10.0


def search_radius_for(distance_miles: float) -> int:
    """Two-tier POI search radius; exactly 50 miles still uses the near radius."""
    if distance_miles > SEARCH_RADIUS_THRESHOLD_MILES:
        return FAR_SEARCH_RADIUS_M
    return NEAR_SEARCH_RADIUS_M


class SearchSession:
    """
    Generation counter for one user's searches. Starting a search supersedes
    any search still pending in the same session.
    """

    def __init__(self):
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        return self._generation

    def begin(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def ensure_current(self, generation: int):
        current = self._generation
        if generation != current:
            raise SupersededSearchError(generation, current)


class MidpointFinder:
    """Main service for finding a fair midpoint and the places around it"""

    def __init__(self, maps_service: MapsService, timeout: float = DEFAULT_TIMEOUT_S,
                 place_category: str = 'all', rng: Optional[random.Random] = None):
        self.maps_service = maps_service
        self.timeout = timeout
        self.place_category = place_category
        self.rng = rng

    def find_midpoint(self, location1: Optional[Location], location2: Optional[Location],
                      session: Optional[SearchSession] = None) -> MidpointResult:
        """Blocking entry point, runs the async search on a private event loop."""
        loop = asyncio.new_event_loop()
        try:
            return loop.run_until_complete(self.find_midpoint_async(location1, location2, session))
        finally:
            loop.close()

    async def find_midpoint_async(self, location1: Optional[Location], location2: Optional[Location],
                                  session: Optional[SearchSession] = None) -> MidpointResult:
        for location in (location1, location2):
            if location is None or not (location.name or '').strip():
                raise MissingLocationError()

        generation = session.begin() if session else None

        location1, location2 = await asyncio.gather(
            self._resolve_location(location1),
            self._resolve_location(location2),
        )
        a, b = location1.coordinates, location2.coordinates

        miles = haversine_miles(a, b)
        radius = search_radius_for(miles)
        logger.info("Straight-line distance %.1f mi, search radius %d m", miles, radius)

        routes, midpoint_coords, source = await self._route_midpoint(a, b)
        if session:
            session.ensure_current(generation)

        address, pois = await asyncio.gather(
            self._midpoint_address(midpoint_coords),
            self._nearby_places(midpoint_coords, radius),
        )
        if session:
            session.ensure_current(generation)

        return MidpointResult(
            midpoint=Midpoint(midpoint_coords, address),
            routes=routes,
            pois=pois,
            search_radius_m=radius,
            midpoint_source=source,
            location1=location1,
            location2=location2,
        )

    async def _bounded(self, call: Awaitable, failure: Type[ProviderError], what: str):
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError:
            raise failure(f"{what} timed out after {self.timeout:.1f}s")

    async def _resolve_location(self, location: Location) -> Location:
        if location.coordinates is not None:
            return location
        try:
            geocoded = await self._bounded(
                self.maps_service.geocode_address_async(location.name), GeocodingFailure, 'Geocoding')
        except GeocodingFailure as e:
            logger.warning("Could not geocode %r: %s", location.name, e)
            raise LocationNotFoundError(location.name) from e
        return Location(location.name, geocoded.coordinates)

    async def _route_midpoint(self, a: Coordinate, b: Coordinate) -> Tuple[RouteSet, Coordinate, str]:
        try:
            raw_routes = await self._bounded(
                self.maps_service.get_routes_async(a, b), RoutingFailure, 'Route lookup')
            if not raw_routes:
                raise RoutingFailure("No route found")
        except RoutingFailure as e:
            logger.warning("Routing failed, using geodesic midpoint: %s", e)
            return straight_line_route_set(a, b), calculate_midpoint(a, b), 'geodesic'

        routes = build_route_set(raw_routes[0], raw_routes[1:], self.rng)
        if routes.main.route_midpoint is None:
            logger.warning("Route has no geometry, using geodesic midpoint")
            return routes, calculate_midpoint(a, b), 'geodesic'
        return routes, routes.main.route_midpoint, 'route'

    async def _midpoint_address(self, point: Coordinate) -> str:
        try:
            return await self._bounded(
                self.maps_service.reverse_geocode_async(point), GeocodingFailure, 'Reverse geocoding')
        except GeocodingFailure as e:
            logger.warning("Reverse geocoding failed: %s", e)
            return UNKNOWN_ADDRESS

    async def _nearby_places(self, center: Coordinate, radius: int) -> List[Place]:
        try:
            records = await self._bounded(
                self.maps_service.find_places_nearby_async(center, radius, self.place_category),
                PlaceSearchFailure, 'Place search')
        except PlaceSearchFailure as e:
            logger.warning("Place search failed: %s", e)
            return []
        logger.info("Found %d places near midpoint", len(records or []))
        ordered = sorted(records or [], key=lambda r: haversine_distance(center, r.coordinates))
        return [annotate_place(record, center, index) for index, record in enumerate(ordered)]
