import json
import logging
import threading
from time import perf_counter
from collections import OrderedDict
from typing import Optional

from flask import Flask, g, jsonify, request
from flask_cors import CORS

from .alternatives import build_route_set
from .config import Settings, build_maps_service
from .exceptions import (
    GeocodingFailure,
    InvalidCoordinateError,
    LocationNotFoundError,
    MissingLocationError,
    RoutingFailure,
    SupersededSearchError,
)
from .maps_service import PLACE_CATEGORIES, MapsService
from .midpoint import MidpointFinder, SearchSession
from .models import Coordinate, Location

logger = logging.getLogger(__name__)


def _parse_location(value) -> Optional[Location]:
    """
    Accept either a plain address string or ``{"name", "lat", "lng"}``.
    Raises InvalidCoordinateError for unusable coordinates or a non-string name.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return Location(value.strip())
    if not isinstance(value, dict):
        raise InvalidCoordinateError("Location must be an address string or an object")
    name = value.get('name') or value.get('address') or ''
    if not isinstance(name, str):
        raise InvalidCoordinateError("Location name must be a string")
    name = name.strip()
    coordinates = None
    if value.get('lat') is not None or value.get('lng') is not None:
        coordinates = Coordinate.from_dict(value)
    return Location(name, coordinates)


def create_app(settings: Optional[Settings] = None, maps_service: Optional[MapsService] = None) -> Flask:
    """Build the API app. ``maps_service`` overrides the provider chosen by ``settings``."""
    settings = settings or Settings.from_env()
    if maps_service is None:
        maps_service = build_maps_service(settings)
    if maps_service is None:
        logger.warning("Maps provider not configured; geocoding and midpoint endpoints are disabled")

    app = Flask(__name__)
    CORS(app)  # Enable CORS for all routes
    app.config['MEETPOINT_SETTINGS'] = settings
    app.extensions['meetpoint_maps_service'] = maps_service

    # Least recently used session ids are dropped once max_sessions is exceeded
    sessions: "OrderedDict[str, SearchSession]" = OrderedDict()
    sessions_lock = threading.Lock()
    app.extensions['meetpoint_sessions'] = sessions

    def _session_for(session_id: Optional[str]) -> Optional[SearchSession]:
        if not session_id:
            return None
        key = str(session_id)
        with sessions_lock:
            session = sessions.get(key)
            if session is None:
                session = sessions[key] = SearchSession()
            sessions.move_to_end(key)
            while len(sessions) > settings.max_sessions:
                sessions.popitem(last=False)
            return session

    def _not_configured():
        logger.error("Maps provider not configured - cannot process request")
        return jsonify({'success': False, 'error': 'Maps provider not configured'}), 500

    # Per-request timing: record start time and log duration on completion
    @app.before_request
    def _start_timer():
        g._start_time = perf_counter()

    @app.after_request
    def _log_request_duration(response):
        start = getattr(g, '_start_time', None)
        if start is not None:
            duration_ms = (perf_counter() - start) * 1000.0
            response.headers['X-Process-Time-ms'] = f"{duration_ms:.1f}"
            logger.info(
                "request completed: method=%s path=%s status=%s duration_ms=%.1f remote_addr=%s",
                request.method,
                request.full_path if request.query_string else request.path,
                response.status_code,
                duration_ms,
                request.remote_addr,
            )
        return response

    @app.teardown_request
    def _teardown_request_log(error=None):
        # An unhandled exception skips after_request, log the duration here instead
        if error is not None:
            start = getattr(g, '_start_time', None)
            duration_ms = (perf_counter() - start) * 1000.0 if start is not None else None
            logger.error(
                "request error: method=%s path=%s duration_ms=%s error=%s",
                request.method,
                request.path,
                f"{duration_ms:.1f}" if duration_ms is not None else 'unknown',
                repr(error),
            )

    @app.route('/', methods=['GET'])
    def health_check():
        """Health check endpoint"""
        return jsonify({
            'message': 'Meet in the Middle API is running!',
            'endpoints': {
                'find_midpoint': '/api/find-midpoint',
                'geocode': '/api/geocode',
                'reverse_geocode': '/api/reverse-geocode',
                'route': '/api/route',
                'config': '/api/config',
                'health': '/'
            },
            'status': 'healthy' if maps_service else 'degraded'
        })

    @app.route('/api/config', methods=['GET'])
    def get_config():
        return jsonify({
            'success': True,
            'data': {
                'provider': maps_service.name if maps_service else None,
                'providerTimeoutSeconds': settings.provider_timeout_s,
                'apiBaseUrl': request.host_url.rstrip('/')
            }
        })

    @app.route('/api/geocode', methods=['POST'])
    def geocode_address():
        """
        Geocode a single address
        Expected JSON: {"address": "123 Main St, City, State"}
        """
        if not maps_service:
            return _not_configured()

        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not str(data.get('address') or '').strip():
            logger.error("Address not provided in request")
            return jsonify({'success': False, 'error': 'Address is required'}), 400

        address = str(data['address']).strip()
        logger.info("Attempting to geocode address: %r", address)
        try:
            location = maps_service.geocode_address(address)
        except GeocodingFailure as e:
            logger.warning("Failed to geocode address %r: %s", address, e)
            return jsonify({
                'success': False,
                'error': 'Could not geocode the provided address'
            }), 404

        return jsonify({
            'success': True,
            'data': {
                'formatted_address': location.name,
                **location.coordinates.to_dict()
            }
        })

    @app.route('/api/reverse-geocode', methods=['POST'])
    def reverse_geocode():
        """
        Expected JSON: {"lat": 40.7128, "lng": -74.0060}
        """
        if not maps_service:
            return _not_configured()
        try:
            point = Coordinate.from_dict(request.get_json(silent=True))
        except InvalidCoordinateError as e:
            return jsonify({'success': False, 'error': str(e)}), 400

        try:
            address = maps_service.reverse_geocode(point)
        except GeocodingFailure as e:
            logger.warning("Failed to reverse geocode %s: %s", point, e)
            return jsonify({'success': False, 'error': 'No address found for the provided point'}), 404
        return jsonify({'success': True, 'data': {'address': address}})

    @app.route('/api/route', methods=['POST'])
    def get_route():
        """
        Route summary with alternatives between two points
        Expected JSON: {
            "origin": {"lat": 40.7128, "lng": -74.0060},
            "destination": {"lat": 34.0522, "lng": -118.2437}
        }
        """
        if not maps_service:
            return _not_configured()

        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not data.get('origin') or not data.get('destination'):
            return jsonify({'success': False, 'error': 'Both origin and destination are required'}), 400
        try:
            origin = Coordinate.from_dict(data['origin'])
            destination = Coordinate.from_dict(data['destination'])
        except InvalidCoordinateError as e:
            return jsonify({'success': False, 'error': str(e)}), 400

        try:
            raw_routes = maps_service.get_routes(origin, destination)
        except RoutingFailure as e:
            logger.warning("Route lookup failed: %s", e)
            return jsonify({
                'success': False,
                'error': 'Could not calculate a route between the provided points'
            }), 404
        return jsonify({'success': True, 'data': build_route_set(raw_routes[0], raw_routes[1:]).to_dict()})

    @app.route('/api/find-midpoint', methods=['POST'])
    def find_midpoint():
        """
        Find the midpoint between two locations and the places around it
        Expected JSON: {
            "location1": "Times Square, New York, NY" | {"name": ..., "lat": ..., "lng": ...},
            "location2": ...,
            "category": "optional place filter, one of restaurant|cafe|entertainment|other|all",
            "session_id": "optional, supersedes earlier searches with the same id"
        }
        """
        logger.info("=== FIND MIDPOINT REQUEST ===")
        if not maps_service:
            return _not_configured()

        data = request.get_json(silent=True)
        logger.info("Request data received: %s", json.dumps(data) if data else 'None')
        if not isinstance(data, dict) or not data:
            return jsonify({'success': False, 'error': 'JSON object is required'}), 400

        try:
            location1 = _parse_location(data.get('location1'))
            location2 = _parse_location(data.get('location2'))
        except InvalidCoordinateError as e:
            return jsonify({'success': False, 'error': str(e)}), 400

        category = data.get('category') or 'all'
        if category not in PLACE_CATEGORIES:
            return jsonify({'success': False, 'error': f"Unknown place category: {category}"}), 400

        finder = MidpointFinder(maps_service, timeout=settings.provider_timeout_s, place_category=category)
        _algo_start = perf_counter()
        try:
            result = finder.find_midpoint(location1, location2, session=_session_for(data.get('session_id')))
        except LocationNotFoundError as e:
            return jsonify({'success': False, 'error': str(e)}), 404
        except MissingLocationError as e:
            logger.error("Missing required locations")
            return jsonify({'success': False, 'error': str(e)}), 400
        except SupersededSearchError as e:
            logger.info("Dropping stale result: %s", e)
            return jsonify({'success': False, 'error': 'Superseded by a newer search'}), 409
        _compute_ms = (perf_counter() - _algo_start) * 1000.0
        logger.info("Time to find midpoint = %.1f ms (source=%s, pois=%d)",
                    _compute_ms, result.midpoint_source, len(result.pois))

        response = jsonify({'success': True, 'data': result.to_dict()})
        response.headers['X-Compute-Time-ms'] = f"{_compute_ms:.1f}"
        return response

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'success': False, 'error': 'Endpoint not found'}), 404

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({'success': False, 'error': 'Internal server error'}), 500

    return app
