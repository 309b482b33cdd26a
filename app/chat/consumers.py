"""
WebSocket consumer for the chat application.

One connection at ws/chat/ carries one logical session (see sessions.py).
The client authenticates the session with a "connect" frame, subscribes
to the rooms it has open and sends messages; the server pushes room
messages, room error notices and personal notifications.

Consumers:
    ChatConsumer: Handles the chat frame protocol

Authentication:
    The transport handshake may carry a token (see middleware.py), but
    only the token in the "connect" frame's own headers binds the session.
    A handshake without a token is accepted for diagnostics ("ping"); a
    handshake with a rejected token is closed with code 4001.

Frames (from client):
    {"type": "connect", "headers": {"Authorization": "Bearer <jwt>"}}
    {"type": "subscribe", "roomId": "<roomId>"}
    {"type": "unsubscribe", "roomId": "<roomId>"}
    {"type": "send", "roomId": "<roomId>", "content": "Hello"}
    {"type": "ping"}

Frames (to client):
    {"type": "connected", "userId": "<uuid>"}
    {"type": "subscribed" | "unsubscribed", "roomId": "<roomId>"}
    {"type": "rejected", "frame": "<type>", "code": "<CODE>", "message": "..."}
    {"type": "pong"}
    {"type": "message", "roomId": "...", "payload": <MessageView>}
    {"type": "error", "roomId": "...", "payload": {"message": "...", "roomId": "..."}}
    {"type": "notification", "roomId": "...", "payload": {"message": "...", "roomId": "..."}}
"""

from __future__ import annotations

import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.conf import settings

from authentication.identity import IdentityProvider
from chat.constants import EVENT_TYPES, FRAME_TYPES, WS_CLOSE_CODES
from chat.middleware import HandshakeAuth
from chat.registry import get_registry
from chat.router import get_router
from chat.services import RoomService
from chat.sessions import ChatSession
from core.exceptions import BaseApplicationError
from core.helpers import extract_bearer_token

logger = logging.getLogger(__name__)


class ChatConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for real-time chat.

    Handles:
        - Session binding from the connect frame
        - Room subscriptions (membership-checked)
        - Sending messages through the MessageRouter
        - Delivering room and personal events

    Attributes:
        registry: SubscriptionRegistry (defaults to the process registry)
        router: MessageRouter (defaults to the process router)
        session: ChatSession for this connection
    """

    registry = None
    router = None

    def __init__(self, *args, registry=None, router=None, **kwargs):
        super().__init__(*args, **kwargs)
        # as_asgi(registry=..., router=...) overrides the process defaults
        if registry is not None:
            self.registry = registry
        if router is not None:
            self.router = router
        self.session: ChatSession | None = None

    # -------------------------------------------------------------------------
    # Connection lifecycle
    # -------------------------------------------------------------------------

    async def connect(self):
        """
        Accept the transport.

        The session starts unbound; nothing is joined until a connect
        frame succeeds.
        """
        if self.registry is None:
            self.registry = get_registry()
        if self.router is None:
            self.router = get_router()

        if self.scope.get("handshake_auth") == HandshakeAuth.INVALID:
            logger.warning("Rejected WebSocket handshake with an invalid token")
            await self.close(code=WS_CLOSE_CODES.UNAUTHENTICATED)
            return

        self.session = ChatSession(
            channel_name=self.channel_name,
            handshake_identity=self.scope.get("handshake_identity"),
        )

        subprotocol = "jwt" if "jwt" in self.scope.get("subprotocols", []) else None
        await self.accept(subprotocol=subprotocol)

    async def disconnect(self, close_code):
        """Close the session and leave every room and user channel."""
        if self.session is None:
            return

        user_id = self.session.user_id
        self.session.close()
        await self.registry.release(self.channel_name)
        if user_id:
            logger.info(f"User {user_id} disconnected (code {close_code})")

    # -------------------------------------------------------------------------
    # Inbound frames
    # -------------------------------------------------------------------------

    async def receive_json(self, content, **kwargs):
        """Dispatch a client frame by its type."""
        if not isinstance(content, dict):
            await self._reject(None, "UNKNOWN_FRAME", "Frames must be JSON objects")
            return

        frame_type = content.get("type")

        if frame_type == FRAME_TYPES.PING:
            await self.send_json({"type": EVENT_TYPES.PONG})
            return

        if frame_type == FRAME_TYPES.CONNECT:
            await self._handle_connect(content)
            return

        if frame_type not in FRAME_TYPES.REQUIRES_BINDING:
            await self._reject(frame_type, "UNKNOWN_FRAME", f"Unknown frame type: {frame_type}")
            return

        guard = self.session.require_bound()
        if not guard.success:
            await self._reject(frame_type, guard.error_code, guard.error)
            return

        room_id = content.get("roomId")
        if not isinstance(room_id, str) or not room_id:
            await self._reject(frame_type, "INVALID_IDENTIFIER", "roomId is required")
            return

        if frame_type == FRAME_TYPES.SUBSCRIBE:
            await self._handle_subscribe(room_id)
        elif frame_type == FRAME_TYPES.UNSUBSCRIBE:
            await self._handle_unsubscribe(room_id)
        else:
            await self._handle_send(room_id, content.get("content"))

    async def _handle_connect(self, content):
        """
        Bind the session to the identity in the frame's own headers.

        A failed attempt leaves the session unbound so the client can
        retry, up to CHAT_MAX_CONNECT_ATTEMPTS before the transport is
        closed.
        """
        if self.session.is_bound:
            await self._reject(
                FRAME_TYPES.CONNECT, "ALREADY_BOUND", "Session is already authenticated"
            )
            return

        headers = content.get("headers") or {}
        token = None
        if isinstance(headers, dict):
            token = extract_bearer_token(
                headers.get("Authorization") or headers.get("authorization")
            ) or headers.get("token")

        result = await database_sync_to_async(IdentityProvider.verify)(token)
        if result.success:
            result = self.session.bind(result.data)

        if not result.success:
            attempts = self.session.record_failed_bind()
            await self._reject(FRAME_TYPES.CONNECT, result.error_code, result.error)
            if attempts >= settings.CHAT_MAX_CONNECT_ATTEMPTS:
                logger.warning(
                    f"Closing {self.channel_name} after {attempts} failed connect frames"
                )
                await self.close(code=WS_CLOSE_CODES.UNAUTHENTICATED)
            return

        user_id = self.session.user_id
        try:
            await self.registry.join_user_channel(self.channel_name, user_id)
        except BaseApplicationError as e:
            # Room traffic still works; only personal notifications are lost
            logger.warning(f"User {user_id} bound without a personal channel: {e}")
        await self.send_json({"type": EVENT_TYPES.CONNECTED, "userId": str(user_id)})
        logger.info(f"User {user_id} bound session {self.channel_name}")

    async def _handle_subscribe(self, room_id: str):
        """Join a room's broadcast topic after checking membership."""
        membership = await database_sync_to_async(RoomService.verify_membership)(
            room_id, self.session.user_id
        )
        if not membership.success:
            await self._reject(FRAME_TYPES.SUBSCRIBE, membership.error_code, membership.error)
            return

        try:
            await self.registry.subscribe_room(self.channel_name, room_id)
        except BaseApplicationError as e:
            await self._reject(FRAME_TYPES.SUBSCRIBE, e.error_code, e.message)
            return
        await self.send_json({"type": EVENT_TYPES.SUBSCRIBED, "roomId": room_id})

    async def _handle_unsubscribe(self, room_id: str):
        """Leave a room's broadcast topic."""
        try:
            await self.registry.unsubscribe_room(self.channel_name, room_id)
        except BaseApplicationError as e:
            await self._reject(FRAME_TYPES.UNSUBSCRIBE, e.error_code, e.message)
            return
        await self.send_json({"type": EVENT_TYPES.UNSUBSCRIBED, "roomId": room_id})

    async def _handle_send(self, room_id: str, content):
        """Route a message; failures are also reported back to the sender."""
        if content is not None and not isinstance(content, str):
            content = str(content)

        result = await self.router.route_send(self.session.identity, room_id, content)
        if not result.success:
            await self._reject(FRAME_TYPES.SEND, result.error_code, result.error)

    async def _reject(self, frame_type, code, message):
        await self.send_json(
            {
                "type": EVENT_TYPES.REJECTED,
                "frame": frame_type,
                "code": code,
                "message": message,
            }
        )

    # -------------------------------------------------------------------------
    # Channel layer events
    # -------------------------------------------------------------------------

    async def chat_event(self, event):
        """
        Handle chat.event messages from the channel layer.

        Personal notifications for a room this session is subscribed to
        are dropped; the room topic already delivered the message.
        """
        if self.session is None or not self.session.is_bound:
            return

        room_id = event.get("roomId")
        if event["event"] == EVENT_TYPES.NOTIFICATION and self.registry.is_subscribed(
            self.channel_name, room_id
        ):
            return

        await self.send_json(
            {
                "type": event["event"],
                "roomId": room_id,
                "payload": event["payload"],
            }
        )
