"""
Root URL configuration.

URL Structure:
    /admin/                        - Django admin interface
    /health/                       - Health check (database and cache)
    /api/schema/                   - OpenAPI schema
    /api/docs/                     - Swagger UI
    /api/v1/chat/                  - Chat endpoints
        rooms/                     - Room list
        rooms/init/                - Open room for a listing
        rooms/{roomId}/            - Room detail
        rooms/{roomId}/messages/   - Message history
        rooms/{roomId}/mark-read/  - Mark room read
        rooms/{roomId}/unread-count/ - Room unread count
        unread-count/              - Total unread count
        ws-test/ping/              - WebSocket diagnostic

WebSocket routes live in chat/routing.py and are mounted in config/asgi.py.
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

from core.views import health_check

api_v1_patterns = [
    path("chat/", include("chat.urls")),
]

urlpatterns = [
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health_check"),
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("api/v1/", include(api_v1_patterns)),
]

admin.site.site_header = "Marketplace Chat Admin"
admin.site.site_title = "Marketplace Chat"
