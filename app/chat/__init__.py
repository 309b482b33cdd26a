"""
Chat app for buyer/seller messaging.

This app handles:
- Rooms between a listing's seller and an interested buyer
- Message persistence, history and unread counts
- WebSocket sessions, room subscriptions and notifications

Related apps:
    - authentication: User model and bearer token verification
    - listings: Listing catalog (owner, title, price, sold flag)

WebSocket Support:
    Uses Django Channels for real-time communication.
    See consumers.py for the frame protocol.
    See routing.py for WebSocket URL patterns.

Usage:
    from chat.services import MessageService, RoomService

    # Open a room
    result = RoomService.get_or_create_room(listing_id, buyer_id)

    # Persist a message
    result = MessageService.append(room.room_id, buyer_id, "Is this still available?")
"""
