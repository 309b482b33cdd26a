"""
Tests for the message router.

These run the full send path against the database and the in-memory
channel layer, so they use transactional tests: the router reaches the
database from worker threads.
"""

import asyncio

import pytest
from channels.db import database_sync_to_async
from channels.layers import get_channel_layer

from authentication.identity import VerifiedIdentity
from chat.constants import EVENT_TYPES
from chat.models import ChatRoom, Message
from chat.registry import SubscriptionRegistry
from chat.router import MessageRouter
from chat.tests.conftest import RedisDownLayer


async def nothing_delivered(layer, channel, timeout=0.1):
    try:
        await asyncio.wait_for(layer.receive(channel), timeout=timeout)
    except asyncio.TimeoutError:
        return True
    return False


@pytest.fixture
def router(registry):
    return MessageRouter(registry=registry)


@database_sync_to_async
def message_contents(room_id):
    return list(
        Message.objects.filter(room_id=room_id)
        .order_by("timestamp", "id")
        .values_list("content", flat=True)
    )


@pytest.mark.django_db(transaction=True)
class TestSuccessfulSend:
    """
    Verifies: persist, publish on the room topic, notify the counterparty.
    """

    @pytest.mark.asyncio
    async def test_publishes_message_view(self, router, registry, room, buyer):
        layer = get_channel_layer()
        listener = await layer.new_channel()
        await registry.subscribe_room(listener, room.room_id)

        result = await router.route_send(
            VerifiedIdentity(user_id=buyer.id), room.room_id, "Is it still available?"
        )

        assert result.success is True
        event = await layer.receive(listener)
        assert event["event"] == EVENT_TYPES.MESSAGE
        assert event["roomId"] == room.room_id
        payload = event["payload"]
        assert payload["content"] == "Is it still available?"
        assert payload["senderId"] == str(buyer.id)
        assert payload["isRead"] is False
        assert payload["id"] == result.data.id
        assert await message_contents(room.room_id) == ["Is it still available?"]

    @pytest.mark.asyncio
    async def test_notifies_only_the_counterparty(self, router, registry, room, buyer, seller):
        layer = get_channel_layer()
        seller_channel = await layer.new_channel()
        buyer_channel = await layer.new_channel()
        await registry.join_user_channel(seller_channel, seller.id)
        await registry.join_user_channel(buyer_channel, buyer.id)

        await router.route_send(VerifiedIdentity(user_id=buyer.id), room.room_id, "hi")

        event = await layer.receive(seller_channel)
        assert event["event"] == EVENT_TYPES.NOTIFICATION
        assert event["payload"] == {"message": "New message in chat", "roomId": room.room_id}
        assert await nothing_delivered(layer, buyer_channel)

    @pytest.mark.asyncio
    async def test_updates_room_activity(self, router, room, buyer):
        result = await router.route_send(VerifiedIdentity(user_id=buyer.id), room.room_id, "hi")

        refreshed = await database_sync_to_async(ChatRoom.objects.get)(pk=room.pk)
        assert refreshed.last_message_at == result.data.timestamp

    @pytest.mark.asyncio
    async def test_publish_order_matches_persistence_order(self, router, registry, room, buyer):
        layer = get_channel_layer()
        listener = await layer.new_channel()
        await registry.subscribe_room(listener, room.room_id)
        identity = VerifiedIdentity(user_id=buyer.id)

        await asyncio.gather(
            *(router.route_send(identity, room.room_id, f"m{i}") for i in range(5))
        )

        published = [(await layer.receive(listener))["payload"]["content"] for _ in range(5)]
        assert published == await message_contents(room.room_id)

    @pytest.mark.asyncio
    async def test_broadcast_failure_keeps_message(self, router, registry, room, buyer):
        """
        Why it matters: once stored, a message is part of history even if
        nobody saw it live.
        """
        await registry.close()

        result = await router.route_send(VerifiedIdentity(user_id=buyer.id), room.room_id, "hi")

        assert result.success is True
        assert await message_contents(room.room_id) == ["hi"]


@pytest.mark.django_db(transaction=True)
class TestRejectedSend:
    """
    Verifies: failures are announced on the room topic and persist nothing.
    """

    @pytest.mark.asyncio
    async def test_outsider(self, router, registry, room, outsider):
        layer = get_channel_layer()
        listener = await layer.new_channel()
        await registry.subscribe_room(listener, room.room_id)

        result = await router.route_send(
            VerifiedIdentity(user_id=outsider.id), room.room_id, "let me in"
        )

        assert result.error_code == "NOT_PARTICIPANT"
        event = await layer.receive(listener)
        assert event["event"] == EVENT_TYPES.ERROR
        assert event["payload"] == {
            "message": "Error: You are not a participant in this room",
            "roomId": room.room_id,
        }
        assert await message_contents(room.room_id) == []

    @pytest.mark.asyncio
    async def test_empty_content(self, router, registry, room, buyer):
        layer = get_channel_layer()
        listener = await layer.new_channel()
        await registry.subscribe_room(listener, room.room_id)

        result = await router.route_send(VerifiedIdentity(user_id=buyer.id), room.room_id, "   ")

        assert result.error_code == "EMPTY_CONTENT"
        event = await layer.receive(listener)
        assert event["payload"]["message"].startswith("Error: ")
        assert await message_contents(room.room_id) == []

    @pytest.mark.asyncio
    async def test_unknown_room(self, router, buyer):
        result = await router.route_send(
            VerifiedIdentity(user_id=buyer.id), "listing_x_buyer_y", "hi"
        )

        assert result.error_code == "ROOM_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self, router, room, buyer, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr("chat.router.MessageService.append", explode)

        result = await router.route_send(VerifiedIdentity(user_id=buyer.id), room.room_id, "hi")

        assert result.success is False
        assert result.error_code == "INTERNAL_ERROR"


@pytest.mark.django_db(transaction=True)
class TestChannelLayerOutage:
    """
    Verifies: a dead channel layer never turns a send into an exception.
    """

    @pytest.fixture
    def down_router(self):
        return MessageRouter(registry=SubscriptionRegistry(channel_layer=RedisDownLayer()))

    @pytest.mark.asyncio
    async def test_stored_message_still_counts_as_sent(self, down_router, room, buyer):
        """
        Why it matters: the message is already in history, so the sender
        must see success and keep a usable connection.
        """
        result = await down_router.route_send(
            VerifiedIdentity(user_id=buyer.id), room.room_id, "anyone there?"
        )

        assert result.success is True
        assert await message_contents(room.room_id) == ["anyone there?"]

    @pytest.mark.asyncio
    async def test_rejected_send_returns_failure(self, down_router, room, outsider):
        result = await down_router.route_send(
            VerifiedIdentity(user_id=outsider.id), room.room_id, "let me in"
        )

        assert result.success is False
        assert result.error_code == "NOT_PARTICIPANT"
        assert await message_contents(room.room_id) == []
