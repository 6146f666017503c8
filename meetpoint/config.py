"""
Application settings.

Values come from the environment (a ``.env`` file is loaded first when
present) and can be overridden by constructing ``Settings`` directly.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .maps_service import GoogleMapsService, MapsService, OpenStreetMapService

logger = logging.getLogger(__name__)

PLACEHOLDER_API_KEY = "your_api_key_here"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() not in ('0', 'false', 'no', 'off', '')


@dataclass
class Settings:
    maps_provider: str = 'auto'
    google_maps_api_key: Optional[str] = None
    nominatim_user_agent: str = 'MeetInTheMiddle/1.0'
    osrm_base_url: str = 'https://router.project-osrm.org'
    overpass_url: str = 'https://overpass-api.de/api/interpreter'
    provider_timeout_s: float = 10.0
    max_workers: int = 10
    max_sessions: int = 1000
    log_level: str = 'INFO'
    log_file: str = 'app.log'
    host: str = '0.0.0.0'
    port: int = 5001
    debug: bool = False
    trust_proxy_headers: bool = True
    wsgi_threads: int = 8

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "Settings":
        load_dotenv(dotenv_path=dotenv_path)
        return cls(
            maps_provider=os.getenv('MAPS_PROVIDER', 'auto').lower(),
            google_maps_api_key=os.getenv('GOOGLE_MAPS_API_KEY'),
            nominatim_user_agent=os.getenv('NOMINATIM_USER_AGENT', 'MeetInTheMiddle/1.0'),
            osrm_base_url=os.getenv('OSRM_BASE_URL', 'https://router.project-osrm.org'),
            overpass_url=os.getenv('OVERPASS_URL', 'https://overpass-api.de/api/interpreter'),
            provider_timeout_s=float(os.getenv('PROVIDER_TIMEOUT_SECONDS', '10')),
            max_workers=int(os.getenv('MAX_WORKERS', '10')),
            max_sessions=int(os.getenv('MAX_SESSIONS', '1000')),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            log_file=os.getenv('LOG_FILE', 'app.log'),
            host=os.getenv('HOST', '0.0.0.0'),
            port=int(os.getenv('PORT', '5001')),
            debug=_env_bool('DEBUG', 'false'),
            trust_proxy_headers=_env_bool('TRUST_PROXY_HEADERS', '1'),
            wsgi_threads=int(os.getenv('WSGI_THREADS', '8')),
        )

    @property
    def has_google_key(self) -> bool:
        return bool(self.google_maps_api_key) and self.google_maps_api_key != PLACEHOLDER_API_KEY

    @property
    def resolved_provider(self) -> str:
        if self.maps_provider == 'auto':
            return 'google' if self.has_google_key else 'osm'
        return self.maps_provider


def configure_logging(settings: Settings):
    handlers = [logging.StreamHandler()]
    if settings.log_file:
        handlers.insert(0, logging.FileHandler(settings.log_file))
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers
    )


def build_maps_service(settings: Settings) -> Optional[MapsService]:
    """
    Create the configured provider, or None when it cannot be configured
    (endpoints then answer with a 500 instead of failing at import time).
    """
    provider = settings.resolved_provider
    logger.info("Google Maps API key found: %s", 'Yes' if settings.has_google_key else 'No')
    try:
        if provider == 'google':
            logger.info("Initializing Google Maps service...")
            return GoogleMapsService(
                settings.google_maps_api_key,
                timeout=settings.provider_timeout_s,
                max_workers=settings.max_workers,
            )
        if provider == 'osm':
            logger.info("Initializing OpenStreetMap service...")
            return OpenStreetMapService(
                user_agent=settings.nominatim_user_agent,
                osrm_base_url=settings.osrm_base_url,
                overpass_url=settings.overpass_url,
                timeout=settings.provider_timeout_s,
                max_workers=settings.max_workers,
            )
        logger.error("Unknown MAPS_PROVIDER: %s", settings.maps_provider)
    except ValueError as e:
        logger.error("Error initializing %s maps service: %s", provider, e)
    return None
