"""
Tests for chat app.

This package contains test modules for:
- test_models.py: ChatRoom, Message model tests
- test_services.py: RoomService, MessageService, UnreadService tests
- test_sessions.py, test_registry.py: Connection gateway state
- test_router.py: Send path (persist, publish, notify)
- test_middleware.py, test_consumers.py: WebSocket handshake and protocol
- test_views.py, test_serializers.py: REST API tests

Usage:
    pytest chat/tests/
    pytest chat/tests/test_consumers.py
"""
