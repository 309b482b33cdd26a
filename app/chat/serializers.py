"""
Serializers for the chat API and WebSocket payloads.

Serializer Hierarchy:
    MessageViewSerializer: Message as pushed on room topics and returned
        by the history endpoint
    RoomDetailSerializer: Room with listing and counterparty info
    RoomSummarySerializer: Room list entry with preview and unread count

    RoomInitSerializer: Input for opening a room
    MessagePageQuerySerializer: page/size query parameters

Context:
    Room serializers render from the viewer's point of view and need
    `viewer_id` in their context. `listings` (listing id -> ListingSnapshot)
    may be passed to avoid one catalog query per room; room summaries also
    read `unread_counts` and `last_messages` (both keyed by room_id).

Design Decisions:
    - Field names are camelCase to match the WebSocket payloads
    - Every value is JSON/msgpack friendly (UUIDs and datetimes as strings)
      so the same data can go through the channel layer
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import serializers

from chat.constants import MESSAGE_CONFIG
from chat.models import ChatRoom, Message
from listings.catalog import ListingCatalog

if TYPE_CHECKING:
    from listings.catalog import ListingSnapshot


# =============================================================================
# Message Serializers
# =============================================================================


class MessageViewSerializer(serializers.ModelSerializer):
    """Message as seen by clients."""

    roomId = serializers.CharField(source="room_id", read_only=True)
    senderId = serializers.UUIDField(source="sender_id", read_only=True)
    isRead = serializers.BooleanField(source="is_read", read_only=True)

    class Meta:
        model = Message
        fields = ["id", "roomId", "senderId", "content", "timestamp", "isRead"]
        read_only_fields = fields


def message_view(message: Message) -> dict:
    """Plain-dict MessageView, safe to hand to the channel layer."""
    return dict(MessageViewSerializer(message).data)


# =============================================================================
# Room Serializers
# =============================================================================


class _RoomViewerMixin(serializers.Serializer):
    """Fields computed relative to the viewer in context["viewer_id"]."""

    roomId = serializers.CharField(source="room_id", read_only=True)
    listingId = serializers.UUIDField(source="listing_id", read_only=True)
    listingTitle = serializers.SerializerMethodField()
    listingThumbnail = serializers.SerializerMethodField()
    otherUserId = serializers.SerializerMethodField()
    otherUsername = serializers.SerializerMethodField()
    otherUserAvatar = serializers.SerializerMethodField()
    lastMessageAt = serializers.DateTimeField(source="last_message_at", read_only=True)
    isSeller = serializers.SerializerMethodField()
    isSold = serializers.SerializerMethodField()

    def _viewer_id(self):
        return self.context["viewer_id"]

    def _listing(self, obj: ChatRoom) -> ListingSnapshot | None:
        listings = self.context.setdefault("listings", {})
        if obj.listing_id not in listings:
            listings[obj.listing_id] = ListingCatalog.get_listing(obj.listing_id)
        return listings[obj.listing_id]

    def _other_user(self, obj: ChatRoom):
        return obj.buyer if obj.is_seller(self._viewer_id()) else obj.seller

    def get_listingTitle(self, obj: ChatRoom) -> str | None:
        listing = self._listing(obj)
        return listing.title if listing else None

    def get_listingThumbnail(self, obj: ChatRoom) -> str | None:
        listing = self._listing(obj)
        return listing.thumbnail_url if listing else None

    def get_otherUserId(self, obj: ChatRoom) -> str:
        return str(obj.counterparty_id(self._viewer_id()))

    def get_otherUsername(self, obj: ChatRoom) -> str:
        return self._other_user(obj).display_name

    def get_otherUserAvatar(self, obj: ChatRoom) -> str | None:
        url = self._other_user(obj).avatar_url
        request = self.context.get("request")
        if url and request is not None:
            return request.build_absolute_uri(url)
        return url

    def get_isSeller(self, obj: ChatRoom) -> bool:
        return obj.is_seller(self._viewer_id())

    def get_isSold(self, obj: ChatRoom) -> bool:
        listing = self._listing(obj)
        return bool(listing and listing.is_sold)


class RoomDetailSerializer(_RoomViewerMixin, serializers.ModelSerializer):
    """
    Full room view returned by init and get-room.

    listingPrice is rendered as a decimal string.
    """

    listingPrice = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = ChatRoom
        fields = [
            "roomId",
            "listingId",
            "listingTitle",
            "listingPrice",
            "listingThumbnail",
            "otherUserId",
            "otherUsername",
            "otherUserAvatar",
            "createdAt",
            "lastMessageAt",
            "isSeller",
            "isSold",
        ]
        read_only_fields = fields

    def get_listingPrice(self, obj: ChatRoom) -> str | None:
        listing = self._listing(obj)
        return f"{listing.price:.2f}" if listing else None


class RoomSummarySerializer(_RoomViewerMixin, serializers.ModelSerializer):
    """Room list entry."""

    lastMessage = serializers.SerializerMethodField()
    unreadCount = serializers.SerializerMethodField()

    class Meta:
        model = ChatRoom
        fields = [
            "roomId",
            "listingId",
            "listingTitle",
            "listingThumbnail",
            "otherUserId",
            "otherUsername",
            "otherUserAvatar",
            "lastMessage",
            "lastMessageAt",
            "unreadCount",
            "isSeller",
            "isSold",
        ]
        read_only_fields = fields

    def get_lastMessage(self, obj: ChatRoom) -> str:
        content = self.context.get("last_messages", {}).get(obj.room_id)
        return content if content is not None else MESSAGE_CONFIG.EMPTY_ROOM_PREVIEW

    def get_unreadCount(self, obj: ChatRoom) -> int:
        return self.context.get("unread_counts", {}).get(obj.room_id, 0)


# =============================================================================
# Input Serializers
# =============================================================================


class RoomInitSerializer(serializers.Serializer):
    """Open (or re-open) the room for a listing."""

    listingId = serializers.UUIDField()
    buyerId = serializers.UUIDField(required=False)


class MessagePageQuerySerializer(serializers.Serializer):
    """Zero-based paging for message history."""

    page = serializers.IntegerField(min_value=0, default=MESSAGE_CONFIG.DEFAULT_PAGE)
    size = serializers.IntegerField(
        min_value=1,
        max_value=MESSAGE_CONFIG.MAX_PAGE_SIZE,
        default=MESSAGE_CONFIG.DEFAULT_PAGE_SIZE,
    )
