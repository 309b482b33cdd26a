"""
Permission classes for chat API.

- IsRoomParticipant: User is the seller or the buyer of the room

A room has exactly two participants and no roles, so a single object
permission covers every room endpoint. The WebSocket path performs the
same check through RoomService.verify_membership.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import permissions

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView

    from chat.models import ChatRoom


class IsRoomParticipant(permissions.BasePermission):
    """Allows access only to the room's seller and buyer."""

    message = "You are not a participant in this room"
    code = "NOT_PARTICIPANT"

    def has_object_permission(self, request: Request, view: APIView, obj: ChatRoom) -> bool:
        if not request.user.is_authenticated:
            return False
        return obj.is_participant(request.user.pk)
