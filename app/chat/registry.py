"""
Subscription registry for real-time delivery.

Wraps a Channels channel layer and gives the chat code two kinds of
delivery channel:

    Room topic:      chat.room.<roomId>   every session subscribed to a room
    Personal channel: chat.user.<userId>  every session bound to a user

Membership lives in the channel layer itself (channels_redis in
deployment), so a message published by one process reaches sessions
connected to any other. The registry additionally remembers which
groups each local channel joined, so a disconnect or a process shutdown
can leave all of them without the consumer tracking group names.

Usage:
    from chat.registry import get_registry

    registry = get_registry()
    await registry.subscribe_room(channel_name, room_id)
    await registry.publish_to_room(room_id, EVENT_TYPES.MESSAGE, payload)
    await registry.release(channel_name)   # on disconnect

Lifecycle:
    One registry per process is built lazily by get_registry().
    shutdown_registry() is called from the ASGI lifespan shutdown hook
    (see chat.lifespan). Tests construct their own instance.
"""

from __future__ import annotations

import logging
import re
import uuid
from collections import defaultdict
from contextlib import contextmanager
from typing import TYPE_CHECKING

from channels.layers import DEFAULT_CHANNEL_LAYER, get_channel_layer

from chat.constants import ROOM_CONFIG
from core.exceptions import BaseApplicationError, TransientError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

    from channels.layers import BaseChannelLayer

logger = logging.getLogger(__name__)

# Channel layer group names: ASCII alphanumerics, hyphen, underscore, period
_GROUP_NAME_RE = re.compile(r"^[A-Za-z0-9_.\-]+$")
_MAX_GROUP_NAME_LENGTH = 99

# Handler name on the consumer for every event this registry publishes
CHANNEL_EVENT_TYPE = "chat.event"


class SubscriptionRegistry:
    """
    Room and user delivery channels on top of a channel layer.

    Args:
        channel_layer: Layer to use. When omitted the layer configured
            under `alias` is resolved on each use, so settings overrides
            take effect.
        alias: CHANNEL_LAYERS key
    """

    def __init__(
        self,
        channel_layer: BaseChannelLayer | None = None,
        alias: str = DEFAULT_CHANNEL_LAYER,
    ):
        self._channel_layer = channel_layer
        self._alias = alias
        self._memberships: dict[str, set[str]] = defaultdict(set)
        self._closed = False

    # -------------------------------------------------------------------------
    # Naming
    # -------------------------------------------------------------------------

    @staticmethod
    def _group_name(prefix: str, key: str) -> str:
        name = f"{prefix}{key}"
        if len(name) > _MAX_GROUP_NAME_LENGTH or not _GROUP_NAME_RE.match(name):
            raise ValidationError(
                "Identifier cannot be used as a delivery channel",
                error_code="INVALID_IDENTIFIER",
                details={"value": key},
            )
        return name

    @classmethod
    def room_group(cls, room_id: str) -> str:
        """Group name of a room's broadcast topic."""
        return cls._group_name(ROOM_CONFIG.ROOM_GROUP_PREFIX, str(room_id))

    @classmethod
    def user_group(cls, user_id: uuid.UUID | str) -> str:
        """Group name of a user's personal notification channel."""
        return cls._group_name(ROOM_CONFIG.USER_GROUP_PREFIX, str(user_id))

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def channel_layer(self) -> BaseChannelLayer:
        layer = self._channel_layer or get_channel_layer(self._alias)
        if layer is None:
            raise TransientError(
                f"No channel layer configured for alias {self._alias!r}",
                error_code="PUBLISH_FAILED",
            )
        return layer

    def _ensure_open(self) -> None:
        if self._closed:
            raise TransientError("Subscription registry is closed", error_code="PUBLISH_FAILED")

    @contextmanager
    def _layer_errors(self, group: str) -> Generator[None, None, None]:
        """
        Re-raise channel layer failures as TransientError.

        channels_redis surfaces an unreachable or slow Redis as
        redis.exceptions.RedisError, which shares no base class with
        OSError.
        """
        try:
            yield
        except BaseApplicationError:
            raise
        except Exception as e:
            raise TransientError(
                f"Channel layer call for {group} failed",
                error_code="PUBLISH_FAILED",
                details={"group": group, "reason": str(e)},
            ) from e

    def subscriptions(self, channel_name: str) -> frozenset[str]:
        """Room ids the channel is currently subscribed to."""
        prefix = ROOM_CONFIG.ROOM_GROUP_PREFIX
        return frozenset(
            group[len(prefix):]
            for group in self._memberships.get(channel_name, ())
            if group.startswith(prefix)
        )

    def is_subscribed(self, channel_name: str, room_id: str) -> bool:
        return room_id in self.subscriptions(channel_name)

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    async def _join(self, channel_name: str, group: str) -> None:
        self._ensure_open()
        with self._layer_errors(group):
            await self.channel_layer.group_add(group, channel_name)
        self._memberships[channel_name].add(group)

    async def _leave(self, channel_name: str, group: str) -> None:
        with self._layer_errors(group):
            await self.channel_layer.group_discard(group, channel_name)
        members = self._memberships.get(channel_name)
        if members is not None:
            members.discard(group)
            if not members:
                del self._memberships[channel_name]

    async def subscribe_room(self, channel_name: str, room_id: str) -> None:
        """Add a channel to a room's broadcast topic."""
        await self._join(channel_name, self.room_group(room_id))
        logger.debug(f"Channel {channel_name} subscribed to room {room_id}")

    async def unsubscribe_room(self, channel_name: str, room_id: str) -> None:
        """Remove a channel from a room's broadcast topic (no-op if absent)."""
        await self._leave(channel_name, self.room_group(room_id))
        logger.debug(f"Channel {channel_name} unsubscribed from room {room_id}")

    async def join_user_channel(self, channel_name: str, user_id: uuid.UUID | str) -> None:
        """Add a channel to its user's personal notification channel."""
        await self._join(channel_name, self.user_group(user_id))

    async def release(self, channel_name: str) -> None:
        """
        Leave every group the channel joined through this registry.

        Best-effort: a group the layer fails to discard is logged and
        left to expire on the layer side.
        """
        groups = self._memberships.pop(channel_name, set())
        for group in groups:
            try:
                with self._layer_errors(group):
                    await self.channel_layer.group_discard(group, channel_name)
            except TransientError as e:
                logger.warning(f"Could not release {channel_name} from {group}: {e}")
        if groups:
            logger.debug(f"Channel {channel_name} released from {len(groups)} groups")

    # -------------------------------------------------------------------------
    # Publishing
    # -------------------------------------------------------------------------

    async def _publish(self, group: str, event: str, room_id: str, payload: dict[str, Any]) -> None:
        self._ensure_open()
        with self._layer_errors(group):
            await self.channel_layer.group_send(
                group,
                {
                    "type": CHANNEL_EVENT_TYPE,
                    "event": event,
                    "roomId": room_id,
                    "payload": payload,
                },
            )

    async def publish_to_room(self, room_id: str, event: str, payload: dict[str, Any]) -> None:
        """Deliver an event to every session subscribed to the room."""
        await self._publish(self.room_group(room_id), event, room_id, payload)

    async def publish_to_user(
        self,
        user_id: uuid.UUID | str,
        event: str,
        room_id: str,
        payload: dict[str, Any],
    ) -> None:
        """Deliver an event to every session bound to the user."""
        await self._publish(self.user_group(user_id), event, room_id, payload)

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """
        Leave every tracked group and refuse further use.

        Safe to call more than once.
        """
        if self._closed:
            return
        self._closed = True
        channels = list(self._memberships)
        for channel_name in channels:
            await self.release(channel_name)
        logger.info(f"Subscription registry closed ({len(channels)} channels released)")


_default_registry: SubscriptionRegistry | None = None


def get_registry() -> SubscriptionRegistry:
    """
    Return this process's registry, creating it on first use.

    A registry closed directly stays in place, so publishes keep failing
    until shutdown_registry() clears it.
    """
    global _default_registry
    if _default_registry is None:
        _default_registry = SubscriptionRegistry()
    return _default_registry


async def shutdown_registry() -> None:
    """Close this process's registry, if one was created."""
    global _default_registry
    registry, _default_registry = _default_registry, None
    if registry is not None:
        await registry.close()
