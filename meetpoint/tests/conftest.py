import pytest

from meetpoint.models import Location

from .helpers import LOS_ANGELES, NEW_YORK, FakeMapsService


@pytest.fixture
def fake_maps():
    service = FakeMapsService()
    yield service
    service.cleanup()


@pytest.fixture
def new_york():
    return Location("New York, NY", NEW_YORK)


@pytest.fixture
def los_angeles():
    return Location("Los Angeles, CA", LOS_ANGELES)
