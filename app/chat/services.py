"""
Chat system service layer.

This module provides the business logic for buyer/seller conversations,
encapsulating every read and write of ChatRoom and Message rows.

Services:
    RoomService: Room identity (get-or-create per listing/buyer pair),
        lookup, membership checks, per-user room lists, activity time
    MessageService: Append-only message store with read-state mutation
    UnreadService: Unread counts and mark-read for external callers

Design Principles:
    - Services are stateless (use class methods)
    - The acting user is always an explicit user_id argument
    - Expected failures return ServiceResult.failure()
    - Unexpected failures raise exceptions
    - Unread counts are derived with aggregate queries, never stored

Usage:
    from chat.services import MessageService, RoomService, UnreadService

    result = RoomService.get_or_create_room(listing_id, buyer_id)
    if result.success:
        room = result.data

    result = MessageService.append(room.room_id, sender_id, "Is this still available?")

    UnreadService.unread_count_for_user(user_id)
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model
from django.db import IntegrityError
from django.db.models import Count, F, OuterRef, Q, Subquery
from django.utils import timezone

from chat.constants import MESSAGE_CONFIG, ROOM_CONFIG
from chat.models import ChatRoom, Message
from core.exceptions import ConflictError, ValidationError
from core.helpers import parse_uuid
from core.services import BaseService, ServiceResult
from listings.catalog import ListingCatalog

if TYPE_CHECKING:
    from collections.abc import Iterable

    from django.db.models import QuerySet

    from listings.catalog import ListingLookup

logger = logging.getLogger(__name__)


# =============================================================================
# Room Service
# =============================================================================


class RoomService(BaseService):
    """
    Service for room identity and directory operations.

    Methods:
        build_room_id: Deterministic room identifier for a pair
        get_or_create_room: Race-safe get-or-create per (listing, buyer)
        get_room: Lookup by room_id
        verify_membership: Authorized / Forbidden / NotFound check
        rooms_for_user: Rooms where the user is seller or buyer
        touch_activity: Record the time of the latest message

    Error codes:
        INVALID_IDENTIFIER: listing or buyer id is not a UUID
        LISTING_NOT_FOUND: Catalog has no such listing
        USER_NOT_FOUND: Buyer does not exist
        SELF_CONVERSATION: Buyer owns the listing
        ROOM_NOT_FOUND: No room with that room_id
        NOT_PARTICIPANT: User is neither seller nor buyer
        ROOM_CONFLICT: Insert collided but the winner could not be re-read
    """

    @staticmethod
    def build_room_id(listing_id: uuid.UUID | str, buyer_id: uuid.UUID | str) -> str:
        """
        Compute the room identifier for a (listing, buyer) pair.

        Identifiers are rendered in canonical lowercase hyphenated form so
        that "ABC..." and "abc..." map to the same room.

        Raises:
            ValidationError: If either id is not a UUID
        """
        listing_uuid = parse_uuid(listing_id, field="listingId")
        buyer_uuid = parse_uuid(buyer_id, field="buyerId")
        return ROOM_CONFIG.ROOM_ID_FORMAT.format(
            listing_id=listing_uuid,
            buyer_id=buyer_uuid,
        )

    @classmethod
    def get_or_create_room(
        cls,
        listing_id: uuid.UUID | str,
        buyer_id: uuid.UUID | str,
        catalog: ListingLookup | None = None,
    ) -> ServiceResult[ChatRoom]:
        """
        Return the room for a (listing, buyer) pair, creating it on first contact.

        Implementation:
            1. Resolve the listing through the catalog
            2. Reject buyers who own the listing
            3. Look up by room_id and return the existing room if found
            4. Otherwise insert with seller = listing owner
            5. A unique-constraint violation means another request won the
               race; re-read the room once and return it

        Args:
            listing_id: Listing the buyer is asking about
            buyer_id: User opening the conversation
            catalog: Listing lookup (defaults to ListingCatalog)

        Returns:
            ServiceResult with the ChatRoom (existing or new)
        """
        catalog = catalog or ListingCatalog

        try:
            listing_uuid = parse_uuid(listing_id, field="listingId")
            buyer_uuid = parse_uuid(buyer_id, field="buyerId")
        except ValidationError as e:
            return ServiceResult.from_error(e)

        listing = catalog.get_listing(listing_uuid)
        if listing is None:
            return ServiceResult.failure(
                "Listing not found",
                error_code="LISTING_NOT_FOUND",
            )

        if listing.owner_id == buyer_uuid:
            return ServiceResult.failure(
                "Seller cannot message themselves",
                error_code="SELF_CONVERSATION",
            )

        room_id = cls.build_room_id(listing_uuid, buyer_uuid)

        try:
            room = ChatRoom.objects.get(room_id=room_id)
            cls.get_logger().debug(f"Found existing room {room_id}")
            return ServiceResult.success(room)
        except ChatRoom.DoesNotExist:
            pass

        if not get_user_model().objects.filter(pk=buyer_uuid).exists():
            return ServiceResult.failure(
                "User not found",
                error_code="USER_NOT_FOUND",
            )

        try:
            with cls.atomic():
                room = ChatRoom.objects.create(
                    room_id=room_id,
                    listing_id=listing_uuid,
                    seller_id=listing.owner_id,
                    buyer_id=buyer_uuid,
                )
        except IntegrityError:
            try:
                room = cls._refetch_after_conflict(room_id)
            except ConflictError as e:
                cls.get_logger().error(f"Room creation conflict for {room_id}: {e}")
                return ServiceResult.from_error(e)
            cls.get_logger().info(f"Room {room_id} was created concurrently, re-read it")
            return ServiceResult.success(room)

        cls.get_logger().info(
            f"Created room {room_id} between seller {room.seller_id} and buyer {room.buyer_id}"
        )
        return ServiceResult.success(room)

    @classmethod
    def _refetch_after_conflict(cls, room_id: str) -> ChatRoom:
        room = ChatRoom.objects.filter(room_id=room_id).first()
        if room is None:
            raise ConflictError(
                "Room could not be created or re-read",
                error_code="ROOM_CONFLICT",
                details={"room_id": room_id},
            )
        return room

    @classmethod
    def get_room(cls, room_id: str) -> ServiceResult[ChatRoom]:
        """
        Look up a room by its external identifier.

        Seller and buyer profiles are loaded in the same query since every
        caller renders the counterparty.
        """
        room = (
            ChatRoom.objects.select_related("seller__profile", "buyer__profile")
            .filter(room_id=room_id)
            .first()
        )
        if room is None:
            return ServiceResult.failure("Room not found", error_code="ROOM_NOT_FOUND")
        return ServiceResult.success(room)

    @classmethod
    def verify_membership(
        cls,
        room_id: str,
        user_id: uuid.UUID | str,
    ) -> ServiceResult[ChatRoom]:
        """
        Check that a user may read or write a room.

        Returns:
            success: Authorized, data is the room
            ROOM_NOT_FOUND: The room does not exist
            NOT_PARTICIPANT: The room exists but the user is not in it
        """
        result = cls.get_room(room_id)
        if not result.success:
            return result

        if not result.data.is_participant(user_id):
            cls.get_logger().info(f"User {user_id} denied access to room {room_id}")
            return ServiceResult.failure(
                "You are not a participant in this room",
                error_code="NOT_PARTICIPANT",
            )
        return result

    @classmethod
    def rooms_for_user(cls, user_id: uuid.UUID | str) -> QuerySet[ChatRoom]:
        """
        Rooms where the user is seller or buyer.

        Ordered by most recent activity first. Rooms without messages come
        after every active room, newest first among themselves.
        """
        return (
            ChatRoom.objects.filter(Q(seller_id=user_id) | Q(buyer_id=user_id))
            .select_related("seller__profile", "buyer__profile")
            .order_by(
                F("last_message_at").desc(nulls_last=True),
                "-created_at",
                "-id",
            )
        )

    @classmethod
    def touch_activity(
        cls,
        room_id: str,
        at: datetime | None = None,
    ) -> ServiceResult[None]:
        """
        Set last_message_at for a room.

        Args:
            room_id: Room that received a message
            at: Activity time (defaults to now)
        """
        updated = ChatRoom.objects.filter(room_id=room_id).update(
            last_message_at=at or timezone.now()
        )
        if not updated:
            return ServiceResult.failure("Room not found", error_code="ROOM_NOT_FOUND")
        return ServiceResult.success(None)


# =============================================================================
# Message Service
# =============================================================================


class MessageService(BaseService):
    """
    Append-only message store.

    Methods:
        append: Persist a new message
        list_by_room: One page of a room's history, oldest first
        mark_read: Flip is_read on the other side's messages
        count_unread: Unread messages in one room for a viewer
        count_unread_for_user: Unread messages across all of a user's rooms
        unread_counts_by_room: count_unread for many rooms in one query
        latest_content_by_room: Last message text for many rooms in one query

    Error codes:
        EMPTY_CONTENT: Content is missing or whitespace
        CONTENT_TOO_LONG: Content exceeds MESSAGE_CONFIG.MAX_CONTENT_LENGTH
        ROOM_NOT_FOUND: No room with that room_id
        NOT_PARTICIPANT: Sender is neither seller nor buyer
    """

    @classmethod
    def append(
        cls,
        room_id: str,
        sender_id: uuid.UUID | str,
        content: str | None,
    ) -> ServiceResult[Message]:
        """
        Persist a message.

        The room row is locked for the duration of the insert so that
        timestamps within a room never go backwards, even when processes
        disagree slightly about the current time.

        Returns:
            ServiceResult with the saved Message (including its id)
        """
        if content is None or not str(content).strip():
            return ServiceResult.failure(
                "Message content cannot be empty",
                error_code="EMPTY_CONTENT",
            )

        if len(content) > MESSAGE_CONFIG.MAX_CONTENT_LENGTH:
            return ServiceResult.failure(
                f"Message content exceeds {MESSAGE_CONFIG.MAX_CONTENT_LENGTH} characters",
                error_code="CONTENT_TOO_LONG",
            )

        with cls.atomic():
            room = ChatRoom.objects.select_for_update().filter(room_id=room_id).first()
            if room is None:
                return ServiceResult.failure("Room not found", error_code="ROOM_NOT_FOUND")

            if not room.is_participant(sender_id):
                return ServiceResult.failure(
                    "You are not a participant in this room",
                    error_code="NOT_PARTICIPANT",
                )

            now = timezone.now()
            last_timestamp = (
                Message.objects.filter(room_id=room_id)
                .order_by("-timestamp", "-id")
                .values_list("timestamp", flat=True)
                .first()
            )
            timestamp = max(now, last_timestamp) if last_timestamp else now

            message = Message.objects.create(
                room_id=room_id,
                sender_id=sender_id,
                content=content,
                timestamp=timestamp,
            )

        cls.get_logger().debug(f"Message {message.id} appended to room {room_id}")
        return ServiceResult.success(message)

    @classmethod
    def list_by_room(
        cls,
        room_id: str,
        page: int = MESSAGE_CONFIG.DEFAULT_PAGE,
        page_size: int = MESSAGE_CONFIG.DEFAULT_PAGE_SIZE,
    ) -> list[Message]:
        """
        Return one page of a room's messages in ascending timestamp order.

        Pages are zero-based. No cursor state is kept, so any page can be
        requested again at any time.

        Raises:
            ValueError: If page is negative or page_size is not positive
        """
        if page < 0 or page_size < 1:
            raise ValueError(f"Invalid page {page} / size {page_size}")

        offset = page * page_size
        return list(
            Message.objects.filter(room_id=room_id).order_by("timestamp", "id")[
                offset : offset + page_size
            ]
        )

    @classmethod
    def last_message(cls, room_id: str) -> Message | None:
        """Newest message in the room, or None for an empty room."""
        return Message.objects.filter(room_id=room_id).order_by("-timestamp", "-id").first()

    @classmethod
    def mark_read(cls, room_id: str, reader_id: uuid.UUID | str) -> int:
        """
        Mark every unread message sent by the other participant as read.

        Idempotent: an immediate second call changes nothing and returns 0.

        Returns:
            Number of messages changed
        """
        updated = (
            Message.objects.filter(room_id=room_id, is_read=False)
            .exclude(sender_id=reader_id)
            .update(is_read=True)
        )
        cls.get_logger().debug(f"User {reader_id} marked {updated} messages read in {room_id}")
        return updated

    @classmethod
    def count_unread(cls, room_id: str, viewer_id: uuid.UUID | str) -> int:
        """Number of messages in the room not sent by viewer and not yet read."""
        return (
            Message.objects.filter(room_id=room_id, is_read=False)
            .exclude(sender_id=viewer_id)
            .count()
        )

    @classmethod
    def count_unread_for_user(cls, user_id: uuid.UUID | str) -> int:
        """
        Unread messages across every room the user participates in.

        Equals the sum of count_unread over those rooms.
        """
        return (
            Message.objects.filter(
                Q(room__seller_id=user_id) | Q(room__buyer_id=user_id),
                is_read=False,
            )
            .exclude(sender_id=user_id)
            .count()
        )

    @classmethod
    def unread_counts_by_room(
        cls,
        room_ids: Iterable[str],
        viewer_id: uuid.UUID | str,
    ) -> dict[str, int]:
        """count_unread for many rooms; rooms with nothing unread are omitted."""
        rows = (
            Message.objects.filter(room_id__in=list(room_ids), is_read=False)
            .exclude(sender_id=viewer_id)
            .values("room_id")
            .annotate(unread=Count("id"))
            .order_by()
        )
        return {row["room_id"]: row["unread"] for row in rows}

    @classmethod
    def latest_content_by_room(cls, room_ids: Iterable[str]) -> dict[str, str]:
        """Content of the newest message per room; empty rooms are omitted."""
        latest = (
            Message.objects.filter(room_id=OuterRef("room_id"))
            .order_by("-timestamp", "-id")
            .values("content")[:1]
        )
        rows = (
            ChatRoom.objects.filter(room_id__in=list(room_ids))
            .annotate(last_content=Subquery(latest))
            .values_list("room_id", "last_content")
        )
        return {room_id: content for room_id, content in rows if content is not None}


# =============================================================================
# Unread Service
# =============================================================================


class UnreadService(BaseService):
    """
    Read-state operations for endpoints (room list, badge, open room).

    The message router never calls this service: read state only changes
    when a participant explicitly views a room.
    """

    @classmethod
    def unread_count_for_room(
        cls,
        room_id: str,
        user_id: uuid.UUID | str,
    ) -> ServiceResult[int]:
        """Unread count for one room, after checking membership."""
        membership = RoomService.verify_membership(room_id, user_id)
        if not membership.success:
            return membership
        return ServiceResult.success(MessageService.count_unread(room_id, user_id))

    @classmethod
    def unread_count_for_user(cls, user_id: uuid.UUID | str) -> int:
        """Global unread badge count."""
        return MessageService.count_unread_for_user(user_id)

    @classmethod
    def mark_read(cls, room_id: str, user_id: uuid.UUID | str) -> ServiceResult[int]:
        """
        Mark a room read for a participant.

        Returns:
            ServiceResult with the number of messages changed
        """
        membership = RoomService.verify_membership(room_id, user_id)
        if not membership.success:
            return membership

        updated = MessageService.mark_read(room_id, user_id)
        if updated:
            logger.info(f"User {user_id} read {updated} messages in room {room_id}")
        return ServiceResult.success(updated)
