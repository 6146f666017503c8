"""Shared fakes and fixtures for the test suite."""

import time

import requests

from meetpoint.exceptions import GeocodingFailure
from meetpoint.maps_service import MapsService
from meetpoint.models import Coordinate, PlaceRecord, RawRoute

NEW_YORK = Coordinate(40.7128, -74.0060)
LOS_ANGELES = Coordinate(34.0522, -118.2437)


class FakeMapsService(MapsService):
    """
    Scriptable provider. Each response attribute holds either the value to
    return or an exception instance to raise; ``delays`` maps an operation
    name to seconds slept before answering.
    """

    name = 'fake'

    def __init__(self):
        super().__init__(max_workers=4)
        self.geocodes = {}
        self.routes = []
        self.address = "1 Main St, Springfield"
        self.places = []
        self.delays = {}
        self.calls = []
        self.on_route = None

    def _answer(self, op, value):
        self.calls.append(op)
        if self.delays.get(op):
            time.sleep(self.delays[op])
        if isinstance(value, Exception):
            raise value
        return value

    def geocode_address(self, address):
        location = self.geocodes.get(address)
        if location is None:
            location = GeocodingFailure(f"No geocoding result for: {address}")
        return self._answer('geocode', location)

    def reverse_geocode(self, point):
        return self._answer('reverse_geocode', self.address)

    def get_routes(self, origin, destination):
        if self.on_route:
            self.on_route()
        return self._answer('route', self.routes)

    def find_places_nearby(self, center, radius, category='all'):
        self.calls.append(('places', radius, category))
        return self._answer('places', self.places)


def straight_route(start: Coordinate, end: Coordinate, steps: int = 10, distance_m=1000.0, duration_s=600.0):
    points = tuple(
        Coordinate(start.lat + (end.lat - start.lat) * i / steps, start.lng + (end.lng - start.lng) * i / steps)
        for i in range(steps + 1)
    )
    return RawRoute(distance_m, duration_s, points)


def place(id, tag, lat, lng, name=None):
    return PlaceRecord(id=id, name=name or f"Place {id}", tag=tag, coordinates=Coordinate(lat, lng))


class FakeResponse:
    def __init__(self, payload=None, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    def __init__(self, response=None):
        self.headers = {}
        self.response = response
        self.requests = []

    def _reply(self):
        if isinstance(self.response, Exception):
            raise self.response
        return self.response

    def get(self, url, **kwargs):
        self.requests.append(('GET', url, kwargs))
        return self._reply()

    def post(self, url, **kwargs):
        self.requests.append(('POST', url, kwargs))
        return self._reply()


class FakeGeoLocation:
    def __init__(self, latitude, longitude, address):
        self.latitude = latitude
        self.longitude = longitude
        self.address = address


class FakeGeocoder:
    def __init__(self, result=None):
        self.result = result
        self.calls = []

    def _reply(self):
        if isinstance(self.result, Exception):
            raise self.result
        return self.result

    def geocode(self, query, exactly_one=True):
        self.calls.append(('geocode', query))
        return self._reply()

    def reverse(self, point, exactly_one=True):
        self.calls.append(('reverse', point))
        return self._reply()
