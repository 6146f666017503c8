"""Exceptions raised by the midpoint engine and its map providers."""


class MeetpointError(Exception):
    """Base class for all meetpoint errors"""


class MissingLocationError(MeetpointError):
    """One or both endpoint locations were not provided"""

    def __init__(self, message: str = "Both locations are required"):
        super().__init__(message)


class LocationNotFoundError(MissingLocationError):
    """An endpoint was given by name but could not be geocoded"""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Could not geocode address: {address}")


class InvalidCoordinateError(MeetpointError, ValueError):
    """Latitude or longitude outside the valid range"""


class InvalidGeometryError(MeetpointError, ValueError):
    """A polyline operation was given no points to work with"""


class ProviderError(MeetpointError):
    """An external maps collaborator errored or had no answer"""


class GeocodingFailure(ProviderError):
    pass


class RoutingFailure(ProviderError):
    pass


class PlaceSearchFailure(ProviderError):
    pass


class SupersededSearchError(MeetpointError):
    """
    A newer search was started in the same session while this one was pending.
    The caller should drop this result instead of showing it.
    """

    def __init__(self, generation: int, current: int):
        self.generation = generation
        self.current = current
        super().__init__(f"Search {generation} superseded by search {current}")
