"""
Message router for inbound send requests.

The router handles one send from a bound session:

    1. Resolve the room                    (RoomService.get_room)
    2. Check the sender is seller or buyer  (ChatRoom.is_participant)
    3. Persist the message                 (MessageService.append)
    4. Record room activity                (RoomService.touch_activity)
    5. Publish the MessageView on the room topic
    6. Notify the other participant on their personal channel

Failures in steps 1-4 never reach the transport. They are announced on
the room topic as {"message": "Error: <reason>", "roomId": ...} and
returned to the caller as a failed ServiceResult, so the sender's
connection stays usable. Step 4 and step 6 are best-effort: their
failures are logged and the send still succeeds. Once step 3 has
committed, nothing rolls the message back.

Ordering:
    Steps 3-5 run under a per-room asyncio.Lock, so within a process the
    publish order of a room equals its persistence order. Unrelated rooms
    never wait on each other.

Usage:
    from chat.router import get_router

    result = await get_router().route_send(session.identity, room_id, content)
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import TYPE_CHECKING

from channels.db import database_sync_to_async
from django.db import DatabaseError

from chat.constants import EVENT_TYPES, NOTIFICATION_TEXT
from chat.registry import SubscriptionRegistry, get_registry
from chat.serializers import message_view
from chat.services import MessageService, RoomService
from core.exceptions import BaseApplicationError
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from authentication.identity import VerifiedIdentity
    from chat.models import Message

logger = logging.getLogger(__name__)


class MessageRouter:
    """
    Validates, persists and fans out chat messages.

    Args:
        registry: Delivery channels (defaults to the process registry)
    """

    def __init__(self, registry: SubscriptionRegistry | None = None):
        self._registry = registry
        self._room_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def registry(self) -> SubscriptionRegistry:
        return self._registry or get_registry()

    def _room_lock(self, room_id: str) -> asyncio.Lock:
        lock = self._room_locks.get(room_id)
        if lock is None:
            lock = asyncio.Lock()
            self._room_locks[room_id] = lock
        return lock

    # -------------------------------------------------------------------------
    # Send path
    # -------------------------------------------------------------------------

    async def route_send(
        self,
        identity: VerifiedIdentity,
        room_id: str,
        content: str | None,
    ) -> ServiceResult[Message]:
        """
        Handle one send request.

        Args:
            identity: Identity bound to the sending session
            room_id: Target room
            content: Message text

        Returns:
            ServiceResult with the persisted Message, or the failure that
            was announced on the room topic
        """
        sender_id = identity.user_id

        async with self._room_lock(room_id):
            try:
                result = await self._persist(room_id, sender_id, content)
            except Exception:
                logger.exception(f"Send from user {sender_id} to room {room_id} failed")
                result = ServiceResult.failure(
                    "Failed to send message",
                    error_code="INTERNAL_ERROR",
                )

            if not result.success:
                logger.info(
                    f"Send from user {sender_id} to room {room_id} rejected: {result.error_code}"
                )
                await self._announce_error(room_id, result.error)
                return result

            message = result.data
            publish = await self._publish_message(message)
            BaseService.log_failure(publish, f"Broadcast of message {message.id}")

        notify = await self.notify_counterparty(message.room, sender_id)
        BaseService.log_failure(notify, f"Notification for message {message.id}")

        return ServiceResult.success(message)

    @database_sync_to_async
    def _persist(self, room_id: str, sender_id, content: str | None) -> ServiceResult[Message]:
        """Steps 1-4 in one worker-thread hop."""
        room_result = RoomService.verify_membership(room_id, sender_id)
        if not room_result.success:
            return room_result

        append_result = MessageService.append(room_id, sender_id, content)
        if not append_result.success:
            return append_result

        message = append_result.data
        # Cache the room on the message; async callers cannot lazy-load it
        message.room = room_result.data

        try:
            touch = RoomService.touch_activity(room_id, at=message.timestamp)
        except DatabaseError as e:
            touch = RoomService.handle_exception(
                e, f"Activity update for room {room_id}", log_level=logging.WARNING
            )
        RoomService.log_failure(touch, f"Activity update for room {room_id}")
        return append_result

    # -------------------------------------------------------------------------
    # Fan-out
    # -------------------------------------------------------------------------

    async def _publish_message(self, message: Message) -> ServiceResult[None]:
        try:
            await self.registry.publish_to_room(
                message.room_id,
                EVENT_TYPES.MESSAGE,
                message_view(message),
            )
        except BaseApplicationError as e:
            return ServiceResult.from_error(e)
        return ServiceResult.success(None)

    async def _announce_error(self, room_id: str, reason: str | None) -> None:
        payload = {
            "message": f"{NOTIFICATION_TEXT.ERROR_PREFIX}{reason}",
            "roomId": room_id,
        }
        try:
            await self.registry.publish_to_room(room_id, EVENT_TYPES.ERROR, payload)
        except BaseApplicationError as e:
            logger.warning(f"Could not announce error on room {room_id}: {e}")

    async def notify_counterparty(self, room, sender_id) -> ServiceResult[None]:
        """
        Tell the other participant that a message arrived.

        Published regardless of whether they have the room open; sessions
        that are subscribed to the room drop it on delivery.
        """
        if room is None:
            return ServiceResult.failure("Room not found", error_code="ROOM_NOT_FOUND")

        try:
            recipient_id = room.counterparty_id(sender_id)
            await self.registry.publish_to_user(
                recipient_id,
                EVENT_TYPES.NOTIFICATION,
                room.room_id,
                {"message": NOTIFICATION_TEXT.NEW_MESSAGE, "roomId": room.room_id},
            )
        except Exception as e:
            return ServiceResult.from_exception(e, "PUBLISH_FAILED")
        return ServiceResult.success(None)


_default_router: MessageRouter | None = None


def get_router() -> MessageRouter:
    """Return this process's router, bound to the process registry."""
    global _default_router
    if _default_router is None:
        _default_router = MessageRouter()
    return _default_router
