"""
WSGI entry point.

Serves only the HTTP side (REST API, admin, health check). WebSocket
chat requires the ASGI application in config/asgi.py.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
