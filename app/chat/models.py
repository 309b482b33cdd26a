"""
Chat system models.

This module defines the data models for buyer/seller conversations:

Models:
    ChatRoom: One private conversation per (listing, buyer) pair
    Message: Append-only text message within a room

Design Decisions:
    - room_id is derived from the pair (listing_{listingId}_buyer_{buyerId}),
      never random, so repeated first-contact requests converge on one row
    - The unique constraint on room_id is what makes get-or-create race-safe
    - seller is copied from the listing owner at creation and never changes
    - listing_id is a plain UUID; the listing catalog is an external lookup
    - Messages are never edited or deleted; only is_read ever changes
    - Message.id is an auto-increment key so (timestamp, id) is a total
      order that matches insertion order

Model Relationships:
    User (1) ──< ChatRoom (as seller)
    User (1) ──< ChatRoom (as buyer)
    ChatRoom (1) ──< Message (via room_id)
    User (1) ──< Message (as sender)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from chat.constants import ROOM_CONFIG
from core.models import BaseModel


class ChatRoom(BaseModel):
    """
    A private conversation between one seller and one buyer about one listing.

    Fields:
        room_id: Deterministic external identifier and real-time topic name
        listing_id: Listing the conversation is about (catalog reference)
        seller: Listing owner at creation time
        buyer: User who opened the conversation
        last_message_at: Time of the latest accepted message (null until then)

    Constraints:
        - room_id unique
        - (listing_id, buyer) unique
        - seller != buyer (no self-conversations)
    """

    room_id = models.CharField(
        max_length=ROOM_CONFIG.ROOM_ID_MAX_LENGTH,
        unique=True,
        help_text="Deterministic identifier: listing_{listingId}_buyer_{buyerId}",
    )
    listing_id = models.UUIDField(
        db_index=True,
        help_text="Listing this conversation is about",
    )
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="rooms_as_seller",
        help_text="Listing owner when the room was created",
    )
    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="rooms_as_buyer",
        help_text="User who started the conversation",
    )
    last_message_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Timestamp of the most recent message (null if none yet)",
    )

    class Meta:
        db_table = "chat_room"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["listing_id", "buyer"],
                name="unique_room_per_listing_buyer",
            ),
            models.CheckConstraint(
                condition=~Q(seller=F("buyer")),
                name="room_seller_not_buyer",
            ),
        ]
        indexes = [
            models.Index(
                fields=["seller", "-last_message_at"],
                name="chat_room_seller_activity_idx",
            ),
            models.Index(
                fields=["buyer", "-last_message_at"],
                name="chat_room_buyer_activity_idx",
            ),
        ]

    def __str__(self) -> str:
        return self.room_id

    def is_participant(self, user_id) -> bool:
        """Check whether the user is the seller or the buyer of this room."""
        return str(user_id) in (str(self.seller_id), str(self.buyer_id))

    def is_seller(self, user_id) -> bool:
        return str(user_id) == str(self.seller_id)

    def counterparty_id(self, user_id):
        """
        Return the other participant's id.

        Raises:
            ValueError: If user_id is not a participant
        """
        if str(user_id) == str(self.seller_id):
            return self.buyer_id
        if str(user_id) == str(self.buyer_id):
            return self.seller_id
        raise ValueError(f"User {user_id} is not a participant of {self.room_id}")


class Message(models.Model):
    """
    A text message within a room.

    Fields:
        room: Room this message belongs to (stored as the room_id string)
        sender: Seller or buyer of the room at send time
        content: Non-blank text
        timestamp: Assigned by the message store; non-decreasing per room
        is_read: Whether the other participant has read it

    Note:
        Message does not inherit BaseModel: it has no mutable fields other
        than is_read, and timestamp is assigned explicitly by the store.
    """

    room = models.ForeignKey(
        ChatRoom,
        to_field="room_id",
        db_column="room_id",
        on_delete=models.CASCADE,
        related_name="messages",
        help_text="Room this message belongs to",
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="chat_messages",
        help_text="User who sent this message",
    )
    content = models.TextField(
        help_text="Message text",
    )
    timestamp = models.DateTimeField(
        default=timezone.now,
        help_text="When the message was persisted",
    )
    is_read = models.BooleanField(
        default=False,
        help_text="Whether the recipient has read this message",
    )

    class Meta:
        db_table = "chat_message"
        ordering = ["timestamp", "id"]
        indexes = [
            # History paging
            models.Index(
                fields=["room", "timestamp", "id"],
                name="chat_msg_room_time_idx",
            ),
            # Unread counting and mark-read
            models.Index(
                fields=["room", "sender", "is_read"],
                name="chat_msg_unread_idx",
            ),
        ]

    def __str__(self) -> str:
        content_preview = (
            self.content[:50] + "..." if len(self.content) > 50 else self.content
        )
        return f"User {self.sender_id}: {content_preview}"
