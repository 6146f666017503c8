import logging
import asyncio
import concurrent.futures
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import googlemaps
from googlemaps.convert import decode_polyline
from googlemaps.exceptions import ApiError, Timeout, TransportError
import requests
from geopy.exc import GeopyError
from geopy.geocoders import Nominatim

from .exceptions import GeocodingFailure, InvalidCoordinateError, PlaceSearchFailure, RoutingFailure
from .models import Coordinate, Location, PlaceRecord, RawRoute

logger = logging.getLogger(__name__)

# --- Module-level constants ---
DEFAULT_TIMEOUT_S = 10.0
DEFAULT_MAX_WORKERS = 10
MAX_PLACES = 20
PLACE_CATEGORIES = ('restaurant', 'cafe', 'entertainment', 'other', 'all')
GOOGLE_ERRORS = (ApiError, TransportError, Timeout)

# Overpass amenity values searched per category filter
OSM_CATEGORY_AMENITIES = {
    'restaurant': ['restaurant', 'fast_food', 'bar', 'pub'],
    'entertainment': ['cinema', 'theatre', 'arts_centre', 'nightclub'],
    'cafe': ['cafe', 'coffee_shop'],
    'other': ['library', 'marketplace', 'park', 'museum'],
}

# Google Places types searched per category filter
GOOGLE_CATEGORY_TYPES = {
    'restaurant': ['restaurant', 'bar'],
    'entertainment': ['movie_theater', 'museum'],
    'cafe': ['cafe'],
    'other': ['library', 'park'],
}


def _expand_category(category: str, table: Dict[str, List[str]]) -> List[str]:
    if category not in PLACE_CATEGORIES:
        raise PlaceSearchFailure(f"Unknown place category: {category}")
    if category == 'all':
        return [value for values in table.values() for value in values]
    return list(table[category])


class MapsService(ABC):
    """
    Geocoding, routing and place search as needed by the midpoint engine.

    Implementations make blocking calls and raise GeocodingFailure,
    RoutingFailure or PlaceSearchFailure when the provider errors or has no
    answer. The ``*_async`` wrappers run those calls on a thread pool.
    """

    name = 'base'

    def __init__(self, max_workers: int = DEFAULT_MAX_WORKERS):
        self.executor = concurrent.futures.ThreadPoolExecutor(max_workers=max_workers)

    def cleanup(self):
        """Clean up resources"""
        if hasattr(self, 'executor'):
            self.executor.shutdown(wait=True)

    @abstractmethod
    def geocode_address(self, address: str) -> Location:
        """Resolve an address; the returned Location carries the provider's formatted address."""

    @abstractmethod
    def reverse_geocode(self, point: Coordinate) -> str:
        """Human readable address of a coordinate"""

    @abstractmethod
    def get_routes(self, origin: Coordinate, destination: Coordinate) -> List[RawRoute]:
        """Driving routes between two points, primary route first"""

    @abstractmethod
    def find_places_nearby(self, center: Coordinate, radius: int, category: str = 'all') -> List[PlaceRecord]:
        """Places within ``radius`` meters of ``center``"""

    # Async wrapper methods for parallel execution
    async def geocode_address_async(self, address: str) -> Location:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, self.geocode_address, address)

    async def reverse_geocode_async(self, point: Coordinate) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, self.reverse_geocode, point)

    async def get_routes_async(self, origin: Coordinate, destination: Coordinate) -> List[RawRoute]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, self.get_routes, origin, destination)

    async def find_places_nearby_async(self, center: Coordinate, radius: int, category: str = 'all') -> List[PlaceRecord]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.executor, self.find_places_nearby, center, radius, category)


class GoogleMapsService(MapsService):
    """Service for interacting with Google Maps APIs"""

    name = 'google'

    def __init__(self, api_key: str, timeout: float = DEFAULT_TIMEOUT_S,
                 max_workers: int = DEFAULT_MAX_WORKERS, client=None):
        if client is None:
            if not api_key or api_key == "your_api_key_here":
                raise ValueError("Valid Google Maps API key is required")
            client = googlemaps.Client(key=api_key, timeout=timeout)
        super().__init__(max_workers)
        self.client = client

    def geocode_address(self, address: str) -> Location:
        """
        Geocode an address using Google Maps Geocoding API
        Returns formatted address and coordinates
        """
        try:
            result = self.client.geocode(address)
        except GOOGLE_ERRORS as e:
            logger.warning("Geocoding error for %r: %s", address, e)
            raise GeocodingFailure(f"Geocoding failed: {e}") from e
        if not result:
            raise GeocodingFailure(f"No geocoding result for: {address}")
        location = result[0]
        try:
            coordinates = Coordinate.from_dict(location['geometry']['location'])
        except (KeyError, InvalidCoordinateError) as e:
            raise GeocodingFailure(f"Malformed geocoding result for: {address}") from e
        return Location(location.get('formatted_address', address), coordinates)

    def reverse_geocode(self, point: Coordinate) -> str:
        try:
            result = self.client.reverse_geocode(point.as_tuple())
        except GOOGLE_ERRORS as e:
            logger.warning("Reverse geocoding error at %s: %s", point, e)
            raise GeocodingFailure(f"Reverse geocoding failed: {e}") from e
        if not result or not result[0].get('formatted_address'):
            raise GeocodingFailure(f"No address found at {point.lat},{point.lng}")
        return result[0]['formatted_address']

    def get_routes(self, origin: Coordinate, destination: Coordinate) -> List[RawRoute]:
        """
        Driving routes from the Directions API, with alternatives.
        Distance/duration are summed across legs (usually 1).
        """
        try:
            directions_result = self.client.directions(
                origin=origin.as_tuple(),
                destination=destination.as_tuple(),
                mode="driving",
                alternatives=True
            )
        except GOOGLE_ERRORS as e:
            logger.warning("Directions error: %s", e)
            raise RoutingFailure(f"Directions request failed: {e}") from e

        routes = []
        for route in directions_result or []:
            total_distance = 0
            total_duration = 0
            for leg in route.get('legs', []):
                total_distance += leg.get('distance', {}).get('value', 0)
                total_duration += leg.get('duration', {}).get('value', 0)

            overview_polyline = route.get('overview_polyline', {}).get('points')
            decoded_points = decode_polyline(overview_polyline) if overview_polyline else []
            try:
                geometry = tuple(Coordinate.from_dict(p) for p in decoded_points)
            except InvalidCoordinateError as e:
                raise RoutingFailure("Directions returned an invalid polyline") from e
            routes.append(RawRoute(total_distance, total_duration, geometry))

        if not routes:
            raise RoutingFailure("No route found")
        return routes

    def find_places_nearby(self, center: Coordinate, radius: int, category: str = 'all') -> List[PlaceRecord]:
        """
        Find places nearby a given location, one Places request per type
        """
        places: List[PlaceRecord] = []
        seen = set()
        for place_type in _expand_category(category, GOOGLE_CATEGORY_TYPES):
            try:
                places_result = self.client.places_nearby(
                    location=center.as_tuple(),
                    radius=radius,
                    type=place_type
                )
            except GOOGLE_ERRORS as e:
                logger.warning("Places search error (%s): %s", place_type, e)
                raise PlaceSearchFailure(f"Places search failed: {e}") from e

            for place in places_result.get('results', []):
                place_id = place.get('place_id') or f"{place_type}-{len(places)}"
                if place_id in seen:
                    continue
                try:
                    coordinates = Coordinate.from_dict(place['geometry']['location'])
                except (KeyError, InvalidCoordinateError):
                    logger.debug("Skipping place without usable location: %s", place_id)
                    continue
                seen.add(place_id)
                places.append(PlaceRecord(
                    id=place_id,
                    name=place.get('name', ''),
                    tag=place_type,
                    coordinates=coordinates,
                    type=place_type,
                    address=place.get('vicinity', ''),
                    price_level=place.get('price_level'),
                ))
        return places[:MAX_PLACES]


class OpenStreetMapService(MapsService):
    """Nominatim geocoding, OSRM routing and Overpass place search (no API key needed)"""

    name = 'osm'

    def __init__(self, user_agent: str = "MeetInTheMiddle/1.0",
                 osrm_base_url: str = "https://router.project-osrm.org",
                 overpass_url: str = "https://overpass-api.de/api/interpreter",
                 timeout: float = DEFAULT_TIMEOUT_S,
                 max_workers: int = DEFAULT_MAX_WORKERS,
                 geocoder=None, session: Optional[requests.Session] = None):
        super().__init__(max_workers)
        self.geocoder = geocoder or Nominatim(user_agent=user_agent, timeout=timeout)
        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': user_agent,
            'Accept-Language': 'en-US,en;q=0.9',
        })
        self.osrm_base_url = osrm_base_url.rstrip('/')
        self.overpass_url = overpass_url
        self.timeout = timeout

    def geocode_address(self, address: str) -> Location:
        try:
            location = self.geocoder.geocode(address, exactly_one=True)
        except GeopyError as e:
            logger.warning("Geocoding error for %r: %s", address, e)
            raise GeocodingFailure(f"Geocoding failed: {e}") from e
        if not location:
            raise GeocodingFailure(f"No geocoding result for: {address}")
        try:
            coordinates = Coordinate(float(location.latitude), float(location.longitude))
        except (TypeError, ValueError) as e:
            raise GeocodingFailure(f"Malformed geocoding result for: {address}") from e
        return Location(location.address or address, coordinates)

    def reverse_geocode(self, point: Coordinate) -> str:
        try:
            location = self.geocoder.reverse(point.as_tuple(), exactly_one=True)
        except GeopyError as e:
            logger.warning("Reverse geocoding error at %s: %s", point, e)
            raise GeocodingFailure(f"Reverse geocoding failed: {e}") from e
        if not location or not location.address:
            raise GeocodingFailure(f"No address found at {point.lat},{point.lng}")
        return location.address

    def get_routes(self, origin: Coordinate, destination: Coordinate) -> List[RawRoute]:
        # OSRM takes lng,lat pairs
        coords = f"{origin.lng},{origin.lat};{destination.lng},{destination.lat}"
        url = f"{self.osrm_base_url}/route/v1/driving/{coords}"
        params = {'overview': 'full', 'geometries': 'geojson', 'alternatives': 'true'}
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("OSRM route error: %s", e)
            raise RoutingFailure(f"Route request failed: {e}") from e

        if not isinstance(data, dict):
            raise RoutingFailure("Unexpected OSRM response")
        if data.get('code') != 'Ok' or not data.get('routes'):
            raise RoutingFailure(f"No route found ({data.get('code')})")

        routes = []
        for route in data['routes']:
            try:
                # OSRM returns [lng, lat], we need lat/lng
                geometry = tuple(Coordinate(c[1], c[0]) for c in route['geometry']['coordinates'])
                routes.append(RawRoute(float(route['distance']), float(route['duration']), geometry))
            except (KeyError, IndexError, TypeError, ValueError) as e:
                raise RoutingFailure("Malformed route in OSRM response") from e
        return routes

    def _build_overpass_query(self, center: Coordinate, radius: int, category: str) -> str:
        amenities = _expand_category(category, OSM_CATEGORY_AMENITIES)
        amenity_query = "".join(
            f"node[amenity={a}](around:{radius},{center.lat},{center.lng});" for a in amenities
        )
        return f"[out:json][timeout:25];({amenity_query});out body;"

    def find_places_nearby(self, center: Coordinate, radius: int, category: str = 'all') -> List[PlaceRecord]:
        query = self._build_overpass_query(center, radius, category)
        try:
            response = self.session.post(self.overpass_url, data={'data': query}, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("Overpass search error: %s", e)
            raise PlaceSearchFailure(f"Place search failed: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get('elements'), list):
            raise PlaceSearchFailure("Overpass response has no elements")

        places = []
        for index, element in enumerate(data['elements']):
            if not isinstance(element, dict):
                continue
            tags = element.get('tags')
            if not isinstance(tags, dict):
                tags = {}
            amenity = str(tags.get('amenity') or 'place')
            try:
                coordinates = Coordinate(float(element['lat']), float(element['lon']))
            except (KeyError, TypeError, ValueError):
                logger.debug("Skipping element without coordinates: %s", element.get('id'))
                continue
            places.append(PlaceRecord(
                id=str(element.get('id', index)),
                name=tags.get('name') or f"{amenity[:1].upper()}{amenity[1:]} {index + 1}",
                tag=amenity,
                coordinates=coordinates,
                type=tags.get('cuisine') or amenity,
                address=tags.get('address') or tags.get('addr:street') or '',
                phone=tags.get('phone', ''),
            ))
        return places
