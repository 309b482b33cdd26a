"""
Tests for chat service layer business logic.

This module tests:
- RoomService: Room identity, get-or-create, membership, listing order
- MessageService: Append, history paging, read state, unread counts
- UnreadService: Membership-checked read operations for endpoints

Testing Philosophy:
    Tests focus on observable behavior:
    - ServiceResult success/failure states and error codes
    - Database state changes
"""

import threading
import uuid
from datetime import timedelta
from unittest.mock import patch

import pytest
from django.db import connection
from django.utils import timezone
from freezegun import freeze_time

from chat.constants import MESSAGE_CONFIG
from chat.models import ChatRoom, Message
from chat.services import MessageService, RoomService, UnreadService
from chat.tests.factories import ChatRoomFactory, MessageFactory
from listings.catalog import ListingSnapshot
from listings.tests.factories import ListingFactory


# =============================================================================
# RoomService
# =============================================================================


class TestBuildRoomId:
    """
    Verifies: room ids are derived from the (listing, buyer) pair.
    """

    def test_format(self):
        listing_id = uuid.UUID("11111111-1111-1111-1111-111111111111")
        buyer_id = uuid.UUID("22222222-2222-2222-2222-222222222222")

        assert RoomService.build_room_id(listing_id, str(buyer_id)) == (
            "listing_11111111-1111-1111-1111-111111111111"
            "_buyer_22222222-2222-2222-2222-222222222222"
        )


@pytest.mark.django_db
class TestGetOrCreateRoom:
    """
    Verifies: one room per (listing, buyer), seller taken from the listing.
    """

    def test_creates_room_with_listing_owner_as_seller(self, listing, seller, buyer):
        result = RoomService.get_or_create_room(listing.id, buyer.id)

        assert result.success is True
        room = result.data
        assert room.room_id == f"listing_{listing.id}_buyer_{buyer.id}"
        assert room.seller_id == seller.id
        assert room.buyer_id == buyer.id
        assert room.listing_id == listing.id
        assert room.last_message_at is None

    def test_second_call_returns_same_room(self, listing, buyer):
        """
        Repeated first contact converges on one room.

        Why it matters: Buyers tapping "chat" twice must not split history.
        """
        first = RoomService.get_or_create_room(listing.id, buyer.id)
        second = RoomService.get_or_create_room(str(listing.id), str(buyer.id))

        assert first.data.room_id == second.data.room_id
        assert ChatRoom.objects.filter(listing_id=listing.id, buyer=buyer).count() == 1

    def test_concurrent_creation_rereads_winner(self, listing, buyer):
        """
        If another request inserts the room between our lookup and insert,
        the unique-constraint violation is resolved by re-reading.

        Why it matters: Two concurrent inits both answer with the same
        room and exactly one row exists.
        """
        winner = ChatRoomFactory(listing=listing, buyer=buyer)

        with patch.object(ChatRoom.objects, "get", side_effect=ChatRoom.DoesNotExist):
            result = RoomService.get_or_create_room(listing.id, buyer.id)

        assert result.success is True
        assert result.data.pk == winner.pk
        assert ChatRoom.objects.filter(room_id=winner.room_id).count() == 1

    def test_seller_cannot_open_room_on_own_listing(self, listing, seller):
        result = RoomService.get_or_create_room(listing.id, seller.id)

        assert result.success is False
        assert result.error_code == "SELF_CONVERSATION"
        assert ChatRoom.objects.count() == 0

    def test_unknown_listing(self, buyer):
        result = RoomService.get_or_create_room(uuid.uuid4(), buyer.id)

        assert result.success is False
        assert result.error_code == "LISTING_NOT_FOUND"

    def test_unknown_buyer(self, listing):
        result = RoomService.get_or_create_room(listing.id, uuid.uuid4())

        assert result.success is False
        assert result.error_code == "USER_NOT_FOUND"

    @pytest.mark.parametrize("listing_id, buyer_id", [("nope", None), (None, "nope")])
    def test_malformed_identifiers(self, listing, buyer, listing_id, buyer_id):
        result = RoomService.get_or_create_room(
            listing_id or listing.id,
            buyer_id or buyer.id,
        )

        assert result.success is False
        assert result.error_code == "INVALID_IDENTIFIER"

    def test_uses_injected_catalog(self, seller, buyer):
        """
        Any object with get_listing can stand in for the catalog.

        Why it matters: Listings may live in another service.
        """
        listing_id = uuid.uuid4()

        class StubCatalog:
            def get_listing(self, requested_id):
                return ListingSnapshot(
                    id=requested_id,
                    owner_id=seller.id,
                    title="Remote listing",
                    price=0,
                    thumbnail_url=None,
                    is_sold=False,
                )

            def get_listings(self, ids):
                return {}

        result = RoomService.get_or_create_room(listing_id, buyer.id, catalog=StubCatalog())

        assert result.success is True
        assert result.data.seller_id == seller.id
        assert result.data.listing_id == listing_id


@pytest.mark.django_db(transaction=True)
class TestConcurrentRoomCreation:
    """
    Verifies: two first contacts racing on real threads end with one room.

    Why it matters:
        A buyer opening the same listing from two devices must not end up
        with two rooms or an error on the losing request.
    """

    def test_two_threads_converge_on_one_room(self, listing, buyer):
        both_missed = threading.Barrier(2, timeout=5)
        first_finished = threading.Event()
        real_get = ChatRoom.objects.get
        results = []
        errors = []

        def racing_get(*args, **kwargs):
            try:
                return real_get(*args, **kwargs)
            finally:
                # Both lookups have missed; the later thread inserts only
                # after the earlier one has committed its room
                if both_missed.wait() != 0:
                    first_finished.wait(timeout=5)

        def open_room():
            try:
                results.append(RoomService.get_or_create_room(listing.id, buyer.id))
            except Exception as e:  # surfaced by the assertions below
                errors.append(e)
            finally:
                first_finished.set()
                connection.close()

        with patch.object(ChatRoom.objects, "get", side_effect=racing_get):
            threads = [threading.Thread(target=open_room) for _ in range(2)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join(timeout=10)

        assert errors == []
        assert len(results) == 2
        assert all(result.success for result in results)
        assert results[0].data.pk == results[1].data.pk
        assert ChatRoom.objects.count() == 1


@pytest.mark.django_db
class TestVerifyMembership:
    """
    Verifies: only the seller and buyer may access a room.
    """

    def test_participants_allowed(self, room, seller, buyer):
        assert RoomService.verify_membership(room.room_id, seller.id).success is True
        assert RoomService.verify_membership(room.room_id, buyer.id).data == room

    def test_outsider_is_not_participant(self, room, outsider):
        result = RoomService.verify_membership(room.room_id, outsider.id)

        assert result.success is False
        assert result.error_code == "NOT_PARTICIPANT"

    def test_missing_room(self, buyer):
        result = RoomService.verify_membership("listing_x_buyer_y", buyer.id)

        assert result.success is False
        assert result.error_code == "ROOM_NOT_FOUND"


@pytest.mark.django_db
class TestRoomsForUser:
    """
    Verifies: most recently active first, empty rooms last by creation.
    """

    def test_ordering(self, buyer):
        now = timezone.now()
        with freeze_time(now - timedelta(days=3)):
            old_empty = ChatRoomFactory(buyer=buyer)
        with freeze_time(now - timedelta(days=2)):
            stale_active = ChatRoomFactory(buyer=buyer, last_message_at=now - timedelta(hours=5))
        with freeze_time(now - timedelta(days=1)):
            new_empty = ChatRoomFactory(buyer=buyer)
            fresh_active = ChatRoomFactory(buyer=buyer, last_message_at=now - timedelta(minutes=1))

        rooms = list(RoomService.rooms_for_user(buyer.id))

        assert rooms == [fresh_active, stale_active, new_empty, old_empty]

    def test_includes_rooms_as_seller(self, room, seller):
        assert list(RoomService.rooms_for_user(seller.id)) == [room]

    def test_excludes_other_users_rooms(self, room, outsider):
        assert list(RoomService.rooms_for_user(outsider.id)) == []


@pytest.mark.django_db
class TestTouchActivity:
    """
    Verifies: last_message_at is updated.
    """

    def test_sets_given_time(self, room):
        at = timezone.now() - timedelta(minutes=5)

        result = RoomService.touch_activity(room.room_id, at=at)

        room.refresh_from_db()
        assert result.success is True
        assert room.last_message_at == at

    def test_missing_room(self, db):
        result = RoomService.touch_activity("listing_x_buyer_y")

        assert result.error_code == "ROOM_NOT_FOUND"


# =============================================================================
# MessageService
# =============================================================================


@pytest.mark.django_db
class TestAppend:
    """
    Verifies: validation and persistence of new messages.
    """

    def test_persists_unread_message(self, room, buyer):
        result = MessageService.append(room.room_id, buyer.id, "Is it still available?")

        assert result.success is True
        message = result.data
        assert message.id is not None
        assert message.room_id == room.room_id
        assert message.sender_id == buyer.id
        assert message.is_read is False

    @pytest.mark.parametrize("content", [None, "", "   ", "\n\t"])
    def test_rejects_blank_content(self, room, buyer, content):
        result = MessageService.append(room.room_id, buyer.id, content)

        assert result.success is False
        assert result.error_code == "EMPTY_CONTENT"
        assert Message.objects.count() == 0

    def test_rejects_oversized_content(self, room, buyer):
        content = "x" * (MESSAGE_CONFIG.MAX_CONTENT_LENGTH + 1)

        result = MessageService.append(room.room_id, buyer.id, content)

        assert result.error_code == "CONTENT_TOO_LONG"

    def test_accepts_content_at_limit(self, room, buyer):
        content = "x" * MESSAGE_CONFIG.MAX_CONTENT_LENGTH

        assert MessageService.append(room.room_id, buyer.id, content).success is True

    def test_non_participant_persists_nothing(self, room, outsider):
        """
        Why it matters: Outsiders cannot inject messages into a room.
        """
        result = MessageService.append(room.room_id, outsider.id, "hello")

        assert result.error_code == "NOT_PARTICIPANT"
        assert Message.objects.count() == 0

    def test_missing_room(self, buyer):
        result = MessageService.append("listing_x_buyer_y", buyer.id, "hello")

        assert result.error_code == "ROOM_NOT_FOUND"

    def test_timestamp_never_goes_backwards(self, room, buyer):
        """
        A message stored with a later timestamp (clock skew between
        processes) pushes the next timestamp forward.

        Why it matters: History order must equal send order.
        """
        future = timezone.now() + timedelta(minutes=10)
        MessageFactory(room=room, sender=buyer, timestamp=future)

        result = MessageService.append(room.room_id, buyer.id, "after skew")

        assert result.data.timestamp == future


@pytest.mark.django_db
class TestListByRoom:
    """
    Verifies: ascending order and zero-based offset paging.
    """

    def test_pages_in_send_order(self, room, buyer, seller):
        for i in range(5):
            sender = buyer if i % 2 == 0 else seller
            MessageService.append(room.room_id, sender.id, f"m{i}")

        first = MessageService.list_by_room(room.room_id, page=0, page_size=2)
        second = MessageService.list_by_room(room.room_id, page=1, page_size=2)
        last = MessageService.list_by_room(room.room_id, page=2, page_size=2)

        assert [m.content for m in first] == ["m0", "m1"]
        assert [m.content for m in second] == ["m2", "m3"]
        assert [m.content for m in last] == ["m4"]

    def test_same_timestamp_keeps_insertion_order(self, room, buyer):
        at = timezone.now()
        with freeze_time(at):
            MessageService.append(room.room_id, buyer.id, "first")
            MessageService.append(room.room_id, buyer.id, "second")

        assert [m.content for m in MessageService.list_by_room(room.room_id)] == [
            "first",
            "second",
        ]

    def test_page_past_end_is_empty(self, room):
        assert MessageService.list_by_room(room.room_id, page=3) == []

    @pytest.mark.parametrize("page, size", [(-1, 10), (0, 0)])
    def test_invalid_paging(self, room, page, size):
        with pytest.raises(ValueError):
            MessageService.list_by_room(room.room_id, page=page, page_size=size)

    def test_last_message(self, room, buyer, seller):
        assert MessageService.last_message(room.room_id) is None

        MessageService.append(room.room_id, buyer.id, "offer?")
        MessageService.append(room.room_id, seller.id, "200 is fine")

        assert MessageService.last_message(room.room_id).content == "200 is fine"


@pytest.mark.django_db
class TestReadState:
    """
    Verifies: mark_read, count_unread and count_unread_for_user.
    """

    def test_buyer_seller_conversation(self, room, seller, buyer):
        """
        B sends "hi", S sends "hello", B sends "still there?".

        Why it matters: This is the canonical exchange every client
        renders; history and unread counts must agree with it.
        """
        MessageService.append(room.room_id, buyer.id, "hi")
        MessageService.append(room.room_id, seller.id, "hello")
        MessageService.append(room.room_id, buyer.id, "still there?")

        history = MessageService.list_by_room(room.room_id)
        assert [m.content for m in history] == ["hi", "hello", "still there?"]
        assert MessageService.count_unread(room.room_id, seller.id) == 2

        MessageService.mark_read(room.room_id, seller.id)

        assert MessageService.count_unread(room.room_id, seller.id) == 0
        assert MessageService.count_unread(room.room_id, buyer.id) == 1

    def test_mark_read_is_idempotent(self, room, seller, buyer):
        MessageService.append(room.room_id, buyer.id, "hi")
        MessageService.append(room.room_id, buyer.id, "anyone?")

        assert MessageService.mark_read(room.room_id, seller.id) == 2
        assert MessageService.mark_read(room.room_id, seller.id) == 0

    def test_mark_read_leaves_own_messages(self, room, buyer):
        MessageService.append(room.room_id, buyer.id, "hi")

        assert MessageService.mark_read(room.room_id, buyer.id) == 0
        assert Message.objects.get().is_read is False

    def test_total_equals_sum_over_rooms(self, room, seller, buyer):
        """
        count_unread_for_user is the sum of count_unread over the user's rooms.

        Why it matters: The global badge must match the per-room badges.
        """
        other_listing = ListingFactory(owner=buyer)
        reverse_room = RoomService.get_or_create_room(other_listing.id, seller.id).data
        third_room = ChatRoomFactory(buyer=buyer)

        MessageService.append(room.room_id, seller.id, "offer?")
        MessageService.append(room.room_id, seller.id, "still want it?")
        MessageService.append(reverse_room.room_id, seller.id, "hi, I'm buying")
        MessageService.append(third_room.room_id, third_room.seller_id, "sold soon")
        MessageService.append(room.room_id, buyer.id, "yes")

        rooms = RoomService.rooms_for_user(buyer.id)
        per_room = sum(MessageService.count_unread(r.room_id, buyer.id) for r in rooms)

        assert MessageService.count_unread_for_user(buyer.id) == per_room == 4

    def test_bulk_helpers(self, room, seller, buyer):
        empty_room = ChatRoomFactory(buyer=buyer)
        MessageService.append(room.room_id, seller.id, "first")
        MessageService.append(room.room_id, seller.id, "latest")

        room_ids = [room.room_id, empty_room.room_id]

        assert MessageService.unread_counts_by_room(room_ids, buyer.id) == {room.room_id: 2}
        assert MessageService.latest_content_by_room(room_ids) == {room.room_id: "latest"}


# =============================================================================
# UnreadService
# =============================================================================


@pytest.mark.django_db
class TestUnreadService:
    """
    Verifies: endpoint-facing read operations check membership first.
    """

    def test_room_count_for_participant(self, room, seller, buyer):
        MessageService.append(room.room_id, buyer.id, "hi")

        result = UnreadService.unread_count_for_room(room.room_id, seller.id)

        assert result.success is True
        assert result.data == 1

    def test_room_count_for_outsider(self, room, outsider):
        result = UnreadService.unread_count_for_room(room.room_id, outsider.id)

        assert result.error_code == "NOT_PARTICIPANT"

    def test_mark_read_for_outsider_changes_nothing(self, room, buyer, outsider):
        MessageService.append(room.room_id, buyer.id, "hi")

        result = UnreadService.mark_read(room.room_id, outsider.id)

        assert result.error_code == "NOT_PARTICIPANT"
        assert Message.objects.filter(is_read=True).count() == 0

    def test_mark_read_returns_count(self, room, seller, buyer):
        MessageService.append(room.room_id, buyer.id, "hi")

        assert UnreadService.mark_read(room.room_id, seller.id).data == 1

    def test_total_for_user(self, room, seller, buyer):
        MessageService.append(room.room_id, buyer.id, "hi")

        assert UnreadService.unread_count_for_user(seller.id) == 1
        assert UnreadService.unread_count_for_user(buyer.id) == 0
