"""
WebSocket URL routing for the chat application.

URL Patterns:
    ws/chat/ - Chat session (rooms are chosen per frame, not per URL)

Authentication:
    Sessions authenticate with a "connect" frame; see consumers.py.
"""

from django.urls import path

from chat import consumers

websocket_urlpatterns = [
    path("ws/chat/", consumers.ChatConsumer.as_asgi()),
]
