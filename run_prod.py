#!/usr/bin/env python3
"""
Production runner for the Meet in the Middle API
- Serves the Flask API with waitress
- Loads .env for MAPS_PROVIDER, GOOGLE_MAPS_API_KEY and other settings

Usage:
  python3 run_prod.py

Environment:
  PORT=8000 (default)        # Port to bind
  HOST=0.0.0.0 (default)     # Host interface
  MAPS_PROVIDER=auto         # auto | osm | google
  GOOGLE_MAPS_API_KEY=...    # Required for the google provider
  TRUST_PROXY_HEADERS=1      # Honour X-Forwarded-* from one proxy hop
  WSGI_THREADS=8
"""

import os
from pathlib import Path

from waitress import serve
from werkzeug.middleware.proxy_fix import ProxyFix

from meetpoint.app import create_app
from meetpoint.config import Settings, configure_logging

PROJECT_ROOT = Path(__file__).resolve().parent


def build_application(settings: Settings):
    application = create_app(settings)
    # Respect reverse proxy headers (X-Forwarded-*) when behind a proxy/HTTPS terminator
    if settings.trust_proxy_headers:
        application.wsgi_app = ProxyFix(
            application.wsgi_app,
            x_for=int(os.getenv('PROXY_FIX_X_FOR', '1')),
            x_proto=int(os.getenv('PROXY_FIX_X_PROTO', '1')),
            x_host=int(os.getenv('PROXY_FIX_X_HOST', '1')),
            x_port=int(os.getenv('PROXY_FIX_X_PORT', '1')),
            x_prefix=int(os.getenv('PROXY_FIX_X_PREFIX', '1')),
        )
    return application


def main():
    settings = Settings.from_env(dotenv_path=str(PROJECT_ROOT / '.env'))
    if 'PORT' not in os.environ:
        settings.port = 8000
    configure_logging(settings)

    if settings.resolved_provider == 'google' and not settings.has_google_key:
        print("\n" + "="*60)
        print("Warning: MAPS_PROVIDER=google but GOOGLE_MAPS_API_KEY is not configured.")
        print("The API will start, but geocoding and midpoint endpoints are disabled.")
        print("Set it in your environment or .env file, or use MAPS_PROVIDER=osm.")
        print("="*60 + "\n")

    print(f"\n🚀 Starting Meet in the Middle API (prod) on http://{settings.host}:{settings.port}")
    print(f" - Provider: {settings.resolved_provider}")
    print(" - API:      /api/*")
    serve(build_application(settings), host=settings.host, port=settings.port, threads=settings.wsgi_threads)


if __name__ == '__main__':
    main()
