"""
URL configuration for chat API.

URL Structure:
    Rooms:
        /rooms/                          GET
        /rooms/init/                     POST
        /rooms/{roomId}/                 GET
        /rooms/{roomId}/messages/        GET
        /rooms/{roomId}/mark-read/       POST
        /rooms/{roomId}/unread-count/    GET

    Unread:
        /unread-count/                   GET

    Diagnostics:
        /ws-test/ping/                   GET

All URLs are prefixed with /api/v1/chat/ in the main URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from chat.views import RoomViewSet, UnreadCountView, WebSocketPingView

router = DefaultRouter()
router.register(r"rooms", RoomViewSet, basename="room")

app_name = "chat"

urlpatterns = [
    path("", include(router.urls)),
    path("unread-count/", UnreadCountView.as_view(), name="unread-count"),
    path("ws-test/ping/", WebSocketPingView.as_view(), name="ws-ping"),
]
