#!/usr/bin/env python3
"""
Main entry point for the Meet in the Middle API (development server)
"""

from meetpoint.app import create_app
from meetpoint.config import Settings, configure_logging

settings = Settings.from_env()
configure_logging(settings)
app = create_app(settings)

if __name__ == '__main__':
    app.run(debug=settings.debug, host=settings.host, port=settings.port)
