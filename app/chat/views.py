"""
Views for chat API.

This module provides REST API endpoints for the chat system:
- RoomViewSet: Open, list and read rooms (nested message history and
  read-state actions)
- UnreadCountView: Global unread badge
- WebSocketPingView: Diagnostic endpoint for clients checking reachability

URL Structure:
    /api/v1/chat/rooms/                          GET
    /api/v1/chat/rooms/init/                     POST
    /api/v1/chat/rooms/{roomId}/                 GET
    /api/v1/chat/rooms/{roomId}/messages/        GET
    /api/v1/chat/rooms/{roomId}/mark-read/       POST
    /api/v1/chat/rooms/{roomId}/unread-count/    GET
    /api/v1/chat/unread-count/                   GET
    /api/v1/chat/ws-test/ping/                   GET

Design Decisions:
    - Messages are only created over the WebSocket; REST is read-side plus
      room creation and read state
    - All operations use the service layer for business logic
    - Error bodies are {"error": str, "error_code": str}; the status is
      derived from the error code (see ERROR_STATUS)
    - Reading history does not mark messages read; clients call mark-read
"""

from __future__ import annotations

import logging

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import (
    OpenApiParameter,
    OpenApiResponse,
    extend_schema,
    extend_schema_view,
)
from rest_framework import exceptions, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from chat.constants import ROOM_CONFIG
from chat.permissions import IsRoomParticipant
from chat.serializers import (
    MessagePageQuerySerializer,
    MessageViewSerializer,
    RoomDetailSerializer,
    RoomInitSerializer,
    RoomSummarySerializer,
)
from chat.services import MessageService, RoomService, UnreadService
from core.exceptions import BaseApplicationError, NotFoundError
from core.services import ServiceResult
from listings.catalog import ListingCatalog

logger = logging.getLogger(__name__)


ERROR_STATUS = {
    "NOT_PARTICIPANT": status.HTTP_403_FORBIDDEN,
    "ROOM_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "LISTING_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "USER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "ROOM_CONFLICT": status.HTTP_409_CONFLICT,
}


def error_response(result: ServiceResult) -> Response:
    """Render a failed ServiceResult; unmapped codes are client errors."""
    return Response(
        {"error": result.error, "error_code": result.error_code},
        status=ERROR_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
    )


class ErrorBodyMixin:
    """Render application errors and permission denials with the chat error body."""

    def handle_exception(self, exc):
        if isinstance(exc, BaseApplicationError):
            return Response(
                exc.to_dict(),
                status=ERROR_STATUS.get(exc.error_code, exc.status_code),
            )
        if isinstance(exc, exceptions.PermissionDenied) and self.request.user.is_authenticated:
            return Response(
                {"error": str(exc.detail), "error_code": exc.get_codes()},
                status=status.HTTP_403_FORBIDDEN,
            )
        return super().handle_exception(exc)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_chat_rooms",
        summary="List rooms",
        description=(
            "Rooms where the current user is seller or buyer, most recently "
            "active first. Rooms without messages come last."
        ),
        responses={200: RoomSummarySerializer(many=True)},
        tags=["Chat - Rooms"],
    ),
    retrieve=extend_schema(
        operation_id="get_chat_room",
        summary="Get room",
        responses={
            200: RoomDetailSerializer,
            403: OpenApiResponse(description="Not a participant in this room"),
            404: OpenApiResponse(description="Room not found"),
        },
        tags=["Chat - Rooms"],
    ),
)
class RoomViewSet(ErrorBodyMixin, viewsets.ViewSet):
    """
    ViewSet for room operations.

    list:
        Room summaries with last message preview and unread count.
        Rooms whose listing is gone from the catalog are skipped.

    retrieve:
        Room detail from the caller's point of view.

    init:
        Get or create the room for a listing. Idempotent.

    messages:
        One page of history, oldest first.

    mark_read:
        Mark the other participant's messages read.

    unread_count:
        Unread messages in this room for the caller.
    """

    permission_classes = [IsAuthenticated, IsRoomParticipant]
    lookup_field = "room_id"
    lookup_value_regex = r"[^/]{1,%d}" % ROOM_CONFIG.ROOM_ID_MAX_LENGTH

    def get_object(self, room_id: str):
        """Look up the room and check the caller participates in it."""
        result = RoomService.get_room(room_id)
        if not result.success:
            raise NotFoundError(result.error, error_code=result.error_code)
        room = result.data
        self.check_object_permissions(self.request, room)
        return room

    def get_serializer_context(self) -> dict:
        return {"request": self.request, "viewer_id": self.request.user.pk}

    def list(self, request):
        """List the caller's rooms."""
        rooms = list(RoomService.rooms_for_user(request.user.pk))

        listings = ListingCatalog.get_listings(room.listing_id for room in rooms)
        visible = [room for room in rooms if room.listing_id in listings]
        if len(visible) != len(rooms):
            logger.debug(
                f"Skipped {len(rooms) - len(visible)} rooms with missing listings "
                f"for user {request.user.pk}"
            )

        room_ids = [room.room_id for room in visible]
        context = self.get_serializer_context()
        context.update(
            {
                "listings": listings,
                "unread_counts": MessageService.unread_counts_by_room(
                    room_ids, request.user.pk
                ),
                "last_messages": MessageService.latest_content_by_room(room_ids),
            }
        )
        serializer = RoomSummarySerializer(visible, many=True, context=context)
        return Response(serializer.data)

    def retrieve(self, request, room_id=None):
        """Get room detail."""
        room = self.get_object(room_id)
        serializer = RoomDetailSerializer(room, context=self.get_serializer_context())
        return Response(serializer.data)

    @extend_schema(
        operation_id="init_chat_room",
        summary="Open room for a listing",
        description=(
            "Return the room between the caller (as buyer) and the listing's "
            "seller, creating it on first contact. Calling again returns the "
            "same room."
        ),
        request=RoomInitSerializer,
        responses={
            200: RoomDetailSerializer,
            400: OpenApiResponse(description="Invalid identifier or self-conversation"),
            403: OpenApiResponse(description="buyerId is not the caller"),
            404: OpenApiResponse(description="Listing or user not found"),
        },
        tags=["Chat - Rooms"],
    )
    @action(detail=False, methods=["post"], permission_classes=[IsAuthenticated])
    def init(self, request):
        """Get or create the room for (listing, caller)."""
        serializer = RoomInitSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {
                    "error": "Invalid room request",
                    "error_code": "INVALID_IDENTIFIER",
                    "details": serializer.errors,
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        data = serializer.validated_data
        buyer_id = data.get("buyerId", request.user.pk)
        if str(buyer_id) != str(request.user.pk):
            return Response(
                {
                    "error": "Rooms can only be opened for yourself",
                    "error_code": "NOT_PARTICIPANT",
                },
                status=status.HTTP_403_FORBIDDEN,
            )

        result = RoomService.get_or_create_room(data["listingId"], buyer_id)
        if not result.success:
            return error_response(result)

        output = RoomDetailSerializer(result.data, context=self.get_serializer_context())
        return Response(output.data)

    @extend_schema(
        operation_id="list_chat_room_messages",
        summary="Get message history",
        parameters=[
            OpenApiParameter(
                name="page",
                type=OpenApiTypes.INT,
                location=OpenApiParameter.QUERY,
                description="Zero-based page number (default 0)",
            ),
            OpenApiParameter(
                name="size",
                type=OpenApiTypes.INT,
                location=OpenApiParameter.QUERY,
                description="Page size, 1 to 100 (default 50)",
            ),
        ],
        responses={
            200: MessageViewSerializer(many=True),
            400: OpenApiResponse(description="Invalid page or size"),
            403: OpenApiResponse(description="Not a participant in this room"),
            404: OpenApiResponse(description="Room not found"),
        },
        tags=["Chat - Messages"],
    )
    @action(detail=True, methods=["get"])
    def messages(self, request, room_id=None):
        """One page of the room's messages in ascending timestamp order."""
        room = self.get_object(room_id)

        query = MessagePageQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return Response(
                {
                    "error": "Invalid page parameters",
                    "error_code": "VALIDATION_ERROR",
                    "details": query.errors,
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        messages = MessageService.list_by_room(
            room.room_id,
            page=query.validated_data["page"],
            page_size=query.validated_data["size"],
        )
        return Response(MessageViewSerializer(messages, many=True).data)

    @extend_schema(
        operation_id="mark_chat_room_read",
        summary="Mark room as read",
        request=None,
        responses={
            200: OpenApiResponse(description='{"result": "success", "updated": n}'),
            403: OpenApiResponse(description="Not a participant in this room"),
            404: OpenApiResponse(description="Room not found"),
        },
        tags=["Chat - Messages"],
    )
    @action(detail=True, methods=["post"], url_path="mark-read")
    def mark_read(self, request, room_id=None):
        """Mark every unread message from the other participant as read."""
        result = UnreadService.mark_read(room_id, request.user.pk)
        if not result.success:
            return error_response(result)
        return Response({"result": "success", "updated": result.data})

    @extend_schema(
        operation_id="get_chat_room_unread_count",
        summary="Get room unread count",
        responses={
            200: OpenApiResponse(description='{"unreadCount": n}'),
            403: OpenApiResponse(description="Not a participant in this room"),
            404: OpenApiResponse(description="Room not found"),
        },
        tags=["Chat - Messages"],
    )
    @action(detail=True, methods=["get"], url_path="unread-count")
    def unread_count(self, request, room_id=None):
        """Unread messages in one room for the caller."""
        result = UnreadService.unread_count_for_room(room_id, request.user.pk)
        if not result.success:
            return error_response(result)
        return Response({"unreadCount": result.data})


class UnreadCountView(APIView):
    """Global unread badge for the current user."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_chat_unread_count",
        summary="Get total unread count",
        responses={200: OpenApiResponse(description='{"unreadCount": n}')},
        tags=["Chat - Messages"],
    )
    def get(self, request):
        return Response({"unreadCount": UnreadService.unread_count_for_user(request.user.pk)})


class WebSocketPingView(APIView):
    """
    Reachability check for chat clients.

    Does not touch the channel layer; it only confirms the chat routes
    are served by this deployment.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        operation_id="chat_ws_ping",
        summary="WebSocket diagnostic ping",
        responses={200: OpenApiResponse(description='{"message": "..."}')},
        tags=["Chat - Diagnostics"],
    )
    def get(self, request):
        return Response({"message": "WebSocket endpoint is accessible"})
