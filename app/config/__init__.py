"""Django project configuration: settings, URLs and ASGI/WSGI entry points."""
