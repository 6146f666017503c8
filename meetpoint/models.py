"""
Value types passed between the midpoint engine, the map providers and the API.

Everything here is immutable and renders to the JSON shape the frontend
consumes through ``to_dict``.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .exceptions import InvalidCoordinateError


@dataclass(frozen=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees"""

    lat: float
    lng: float

    def __post_init__(self):
        if not -90.0 <= self.lat <= 90.0:
            raise InvalidCoordinateError(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise InvalidCoordinateError(f"Longitude out of range: {self.lng}")

    @classmethod
    def from_dict(cls, data: Dict) -> "Coordinate":
        """Build from ``{'lat', 'lng'}`` (``'lon'`` is accepted for OSM-style payloads)."""
        if not isinstance(data, dict):
            raise InvalidCoordinateError("Coordinate must be an object with lat and lng")
        lng = data.get('lng', data.get('lon'))
        if data.get('lat') is None or lng is None:
            raise InvalidCoordinateError("Coordinate must have lat and lng properties")
        try:
            lat, lng = float(data['lat']), float(lng)
        except (TypeError, ValueError):
            raise InvalidCoordinateError(f"Coordinate values must be numbers: {data!r}")
        return cls(lat, lng)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.lat, self.lng)

    def to_dict(self) -> Dict:
        return {'lat': self.lat, 'lng': self.lng}


Polyline = Sequence[Coordinate]


@dataclass(frozen=True)
class Location:
    """A user-entered endpoint. Coordinates are filled in by geocoding when missing."""

    name: str
    coordinates: Optional[Coordinate] = None

    def to_dict(self) -> Dict:
        return {
            'name': self.name,
            'coordinates': self.coordinates.to_dict() if self.coordinates else None,
        }


@dataclass(frozen=True)
class RawRoute:
    """A route as measured by a routing provider, before any formatting"""

    distance_m: float
    duration_s: float
    geometry: Tuple[Coordinate, ...] = ()


@dataclass(frozen=True)
class Route:
    distance: str
    duration: str
    geometry: Optional[Tuple[Coordinate, ...]] = None
    route_midpoint: Optional[Coordinate] = None

    def to_dict(self) -> Dict:
        return {
            'distance': self.distance,
            'duration': self.duration,
            'geometry': [p.to_dict() for p in self.geometry] if self.geometry is not None else None,
            'route_midpoint': self.route_midpoint.to_dict() if self.route_midpoint else None,
        }


@dataclass(frozen=True)
class RouteSet:
    main: Route
    alternatives: Tuple[Route, ...] = ()

    def to_dict(self) -> Dict:
        return {
            'main': self.main.to_dict(),
            'alternatives': [r.to_dict() for r in self.alternatives],
        }


@dataclass(frozen=True)
class PlaceRecord:
    """A place as returned by a place-search provider"""

    id: str
    name: str
    tag: str
    coordinates: Coordinate
    type: str = ''
    address: str = ''
    phone: str = ''
    price_level: Optional[int] = None


@dataclass(frozen=True)
class Place:
    """A place annotated for display around a midpoint"""

    id: str
    name: str
    type: str
    category: str
    address: str
    phone: str
    distance: str
    image_url: str
    price_level: str
    coordinates: Coordinate
    links: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'category': self.category,
            'address': self.address,
            'phone': self.phone,
            'distance': self.distance,
            'image_url': self.image_url,
            'price_level': self.price_level,
            'coordinates': self.coordinates.to_dict(),
            'links': dict(self.links),
        }


@dataclass(frozen=True)
class Midpoint:
    coordinates: Coordinate
    address: str

    def to_dict(self) -> Dict:
        return {'coordinates': self.coordinates.to_dict(), 'address': self.address}


@dataclass(frozen=True)
class MidpointResult:
    """Everything the frontend needs after a find-midpoint request"""

    midpoint: Midpoint
    routes: RouteSet
    pois: List[Place]
    search_radius_m: int
    midpoint_source: str
    location1: Optional[Location] = None
    location2: Optional[Location] = None

    def to_dict(self) -> Dict:
        return {
            'midpoint': self.midpoint.to_dict(),
            'midpoint_source': self.midpoint_source,
            'routes': self.routes.to_dict(),
            'pois': [p.to_dict() for p in self.pois],
            'search_radius_m': self.search_radius_m,
            'location1': self.location1.to_dict() if self.location1 else None,
            'location2': self.location2.to_dict() if self.location2 else None,
        }
