"""
Constants and configuration for the chat module.

This module centralizes configuration values for:
- Message content limits and history paging
- Room identifier format
- WebSocket frame types and close codes
- Human-readable texts pushed to clients

Import example:
    from chat.constants import MESSAGE_CONFIG, FRAME_TYPES
"""

from typing import Final

# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    MAX_CONTENT_LENGTH: Final[int] = 5000  # Characters

    # History paging (page is zero-based)
    DEFAULT_PAGE: Final[int] = 0
    DEFAULT_PAGE_SIZE: Final[int] = 50
    MAX_PAGE_SIZE: Final[int] = 100

    # Room list preview when a room has no messages
    EMPTY_ROOM_PREVIEW: Final[str] = "No messages yet"


# =============================================================================
# Room Configuration
# =============================================================================


class ROOM_CONFIG:
    """Configuration for room identifiers."""

    ROOM_ID_FORMAT: Final[str] = "listing_{listing_id}_buyer_{buyer_id}"
    ROOM_ID_MAX_LENGTH: Final[int] = 120

    # Channel layer group names (ASCII, < 100 chars)
    ROOM_GROUP_PREFIX: Final[str] = "chat.room."
    USER_GROUP_PREFIX: Final[str] = "chat.user."


# =============================================================================
# WebSocket Protocol
# =============================================================================


class FRAME_TYPES:
    """Client frame types accepted by ChatConsumer."""

    CONNECT: Final[str] = "connect"
    SUBSCRIBE: Final[str] = "subscribe"
    UNSUBSCRIBE: Final[str] = "unsubscribe"
    SEND: Final[str] = "send"
    PING: Final[str] = "ping"

    # Frames that need a bound session
    REQUIRES_BINDING: Final[frozenset] = frozenset({SUBSCRIBE, UNSUBSCRIBE, SEND})


class EVENT_TYPES:
    """Server push frame types."""

    CONNECTED: Final[str] = "connected"
    SUBSCRIBED: Final[str] = "subscribed"
    UNSUBSCRIBED: Final[str] = "unsubscribed"
    REJECTED: Final[str] = "rejected"
    PONG: Final[str] = "pong"
    MESSAGE: Final[str] = "message"
    ERROR: Final[str] = "error"
    NOTIFICATION: Final[str] = "notification"


class WS_CLOSE_CODES:
    """Application close codes (4000-4999 range)."""

    UNAUTHENTICATED: Final[int] = 4001


class NOTIFICATION_TEXT:
    """Texts carried in {message, roomId} events."""

    NEW_MESSAGE: Final[str] = "New message in chat"
    ERROR_PREFIX: Final[str] = "Error: "
