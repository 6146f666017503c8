"""API tests against the Flask test client with a scripted provider."""

import pytest

from meetpoint.app import create_app
from meetpoint.config import Settings
from meetpoint.exceptions import GeocodingFailure, RoutingFailure
from meetpoint.models import Coordinate, Location

from .helpers import LOS_ANGELES, NEW_YORK, place, straight_route


@pytest.fixture
def settings():
    return Settings(log_file='', provider_timeout_s=2)


@pytest.fixture
def client(settings, fake_maps):
    app = create_app(settings, maps_service=fake_maps)
    app.testing = True
    return app.test_client()


@pytest.fixture
def unconfigured_client():
    app = create_app(Settings(maps_provider='google', google_maps_api_key='your_api_key_here', log_file=''))
    app.testing = True
    return app.test_client()


class TestHealth:
    def test_health(self, client):
        response = client.get('/')
        assert response.status_code == 200
        body = response.get_json()
        assert body['status'] == 'healthy'
        assert body['endpoints']['find_midpoint'] == '/api/find-midpoint'
        assert 'X-Process-Time-ms' in response.headers

    def test_degraded_without_provider(self, unconfigured_client):
        assert unconfigured_client.get('/').get_json()['status'] == 'degraded'

    def test_config(self, client):
        data = client.get('/api/config').get_json()['data']
        assert data['provider'] == 'fake'
        assert data['providerTimeoutSeconds'] == 2

    def test_unknown_endpoint(self, client):
        response = client.get('/api/nope')
        assert response.status_code == 404
        assert response.get_json() == {'success': False, 'error': 'Endpoint not found'}


class TestGeocode:
    def test_geocode(self, client, fake_maps):
        fake_maps.geocodes = {'New York': Location('New York, NY, USA', NEW_YORK)}
        response = client.post('/api/geocode', json={'address': ' New York '})
        assert response.status_code == 200
        assert response.get_json()['data'] == {
            'formatted_address': 'New York, NY, USA', 'lat': NEW_YORK.lat, 'lng': NEW_YORK.lng,
        }

    def test_missing_address(self, client):
        response = client.post('/api/geocode', json={'address': '  '})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Address is required'

    def test_not_found(self, client):
        response = client.post('/api/geocode', json={'address': 'Atlantis'})
        assert response.status_code == 404
        assert response.get_json()['success'] is False

    def test_reverse_geocode(self, client, fake_maps):
        response = client.post('/api/reverse-geocode', json={'lat': 40.0, 'lng': -75.0})
        assert response.get_json()['data']['address'] == fake_maps.address

    def test_reverse_geocode_bad_point(self, client):
        assert client.post('/api/reverse-geocode', json={'lat': 95.0, 'lng': 0}).status_code == 400
        assert client.post('/api/reverse-geocode', json={'lat': 'north'}).status_code == 400

    def test_reverse_geocode_failure(self, client, fake_maps):
        fake_maps.address = GeocodingFailure("down")
        assert client.post('/api/reverse-geocode', json={'lat': 40.0, 'lng': -75.0}).status_code == 404


class TestRoute:
    def test_route(self, client, fake_maps):
        fake_maps.routes = [straight_route(Coordinate(40.0, -75.0), Coordinate(40.0, -74.0), distance_m=85000)]
        response = client.post('/api/route', json={
            'origin': {'lat': 40.0, 'lng': -75.0},
            'destination': {'lat': 40.0, 'lng': -74.0},
        })
        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['main']['distance'] == '85.0 km'
        assert data['main']['route_midpoint']['lng'] == pytest.approx(-74.5)
        assert len(data['alternatives']) == 2

    def test_missing_destination(self, client):
        response = client.post('/api/route', json={'origin': {'lat': 40.0, 'lng': -75.0}})
        assert response.status_code == 400

    def test_routing_failure(self, client, fake_maps):
        fake_maps.routes = RoutingFailure("no route")
        response = client.post('/api/route', json={
            'origin': {'lat': 40.0, 'lng': -75.0},
            'destination': {'lat': 40.0, 'lng': -74.0},
        })
        assert response.status_code == 404


class TestFindMidpoint:
    def test_addresses(self, client, fake_maps):
        fake_maps.geocodes = {
            'New York': Location('New York, NY, USA', NEW_YORK),
            'Los Angeles': Location('Los Angeles, CA, USA', LOS_ANGELES),
        }
        response = client.post('/api/find-midpoint', json={'location1': 'New York', 'location2': 'Los Angeles'})
        assert response.status_code == 200
        assert 'X-Compute-Time-ms' in response.headers

        data = response.get_json()['data']
        assert data['midpoint_source'] == 'geodesic'
        assert data['search_radius_m'] == 11265
        assert data['location1']['coordinates'] == NEW_YORK.to_dict()

    def test_coordinates_skip_geocoding(self, client, fake_maps):
        fake_maps.routes = [straight_route(Coordinate(40.0, -75.0), Coordinate(40.0, -74.9))]
        fake_maps.places = [place('p1', 'cafe', 40.0, -74.95)]
        response = client.post('/api/find-midpoint', json={
            'location1': {'name': 'Home', 'lat': 40.0, 'lng': -75.0},
            'location2': {'address': 'Work', 'lat': 40.0, 'lng': -74.9},
        })
        data = response.get_json()['data']

        assert 'geocode' not in fake_maps.calls
        assert data['midpoint_source'] == 'route'
        assert data['search_radius_m'] == 4828
        assert data['pois'][0]['category'] == 'cafe'
        assert data['pois'][0]['image_url'].startswith('https://images.unsplash.com/')

    def test_category_filter(self, client, fake_maps):
        response = client.post('/api/find-midpoint', json={
            'location1': {'name': 'Home', 'lat': 40.0, 'lng': -75.0},
            'location2': {'name': 'Work', 'lat': 40.0, 'lng': -74.9},
            'category': 'cafe',
        })
        assert response.status_code == 200
        assert ('places', 4828, 'cafe') in fake_maps.calls

    def test_unknown_category(self, client):
        response = client.post('/api/find-midpoint', json={
            'location1': 'Home', 'location2': 'Work', 'category': 'spa',
        })
        assert response.status_code == 400

    def test_missing_location(self, client):
        response = client.post('/api/find-midpoint', json={'location1': 'New York'})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Both locations are required'

    def test_no_body(self, client):
        assert client.post('/api/find-midpoint').status_code == 400

    def test_bad_coordinates(self, client):
        response = client.post('/api/find-midpoint', json={
            'location1': {'name': 'Home', 'lat': 123.0, 'lng': 0.0},
            'location2': 'Work',
        })
        assert response.status_code == 400

    def test_unknown_address(self, client):
        response = client.post('/api/find-midpoint', json={'location1': 'Atlantis', 'location2': 'Lemuria'})
        assert response.status_code == 404
        assert 'Could not geocode address' in response.get_json()['error']

    def test_superseded_search(self, client, fake_maps):
        # a second search in the same session starts while the first is routing
        def start_newer_search():
            fake_maps.on_route = None
            client.post('/api/find-midpoint', json={
                'location1': {'name': 'A', 'lat': 1.0, 'lng': 1.0},
                'location2': {'name': 'B', 'lat': 1.0, 'lng': 1.1},
                'session_id': 'abc',
            })

        fake_maps.on_route = start_newer_search
        response = client.post('/api/find-midpoint', json={
            'location1': {'name': 'A', 'lat': 1.0, 'lng': 1.0},
            'location2': {'name': 'B', 'lat': 1.0, 'lng': 1.1},
            'session_id': 'abc',
        })
        assert response.status_code == 409


class TestSessions:
    def _search(self, client, session_id):
        return client.post('/api/find-midpoint', json={
            'location1': {'name': 'A', 'lat': 1.0, 'lng': 1.0},
            'location2': {'name': 'B', 'lat': 1.0, 'lng': 1.1},
            'session_id': session_id,
        })

    def test_session_map_is_bounded(self, fake_maps):
        app = create_app(Settings(log_file='', max_sessions=5), maps_service=fake_maps)
        client = app.test_client()
        for i in range(40):
            assert self._search(client, f"s{i}").status_code == 200

        sessions = app.extensions['meetpoint_sessions']
        assert len(sessions) == 5
        assert list(sessions) == ['s35', 's36', 's37', 's38', 's39']

    def test_recent_sessions_are_kept(self, fake_maps):
        app = create_app(Settings(log_file='', max_sessions=2), maps_service=fake_maps)
        client = app.test_client()
        self._search(client, 'keep')
        self._search(client, 'other')
        self._search(client, 'keep')
        self._search(client, 'newest')

        sessions = app.extensions['meetpoint_sessions']
        assert list(sessions) == ['keep', 'newest']
        assert sessions['keep'].generation == 2


class TestMalformedBodies:
    @pytest.mark.parametrize("path", ['/api/geocode', '/api/reverse-geocode', '/api/route', '/api/find-midpoint'])
    @pytest.mark.parametrize("body", [[1, 2], "text", 7])
    def test_non_object_body(self, client, path, body):
        response = client.post(path, json=body)
        assert response.status_code == 400
        assert response.get_json()['success'] is False

    def test_non_string_location_name(self, client):
        response = client.post('/api/find-midpoint', json={
            'location1': {'name': 42, 'lat': 1.0, 'lng': 1.0},
            'location2': 'Work',
        })
        assert response.status_code == 400

    def test_non_object_route_points(self, client):
        response = client.post('/api/route', json={'origin': [40.0, -75.0], 'destination': 'LA'})
        assert response.status_code == 400


class TestUnconfigured:
    @pytest.mark.parametrize("path", ['/api/geocode', '/api/reverse-geocode', '/api/route', '/api/find-midpoint'])
    def test_endpoints_answer_500(self, unconfigured_client, path):
        response = unconfigured_client.post(path, json={})
        assert response.status_code == 500
        assert response.get_json() == {'success': False, 'error': 'Maps provider not configured'}

    def test_config_reports_no_provider(self, unconfigured_client):
        assert unconfigured_client.get('/api/config').get_json()['data']['provider'] is None
