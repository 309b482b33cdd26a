"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Room browsing (by listing, seller or buyer)
- Message moderation
"""

from django.contrib import admin

from chat.models import ChatRoom, Message


class MessageInline(admin.TabularInline):
    """Inline display of a room's messages."""

    model = Message
    extra = 0
    fields = ["sender", "content", "timestamp", "is_read"]
    readonly_fields = ["timestamp"]
    raw_id_fields = ["sender"]
    ordering = ["timestamp", "id"]


@admin.register(ChatRoom)
class ChatRoomAdmin(admin.ModelAdmin):
    """Admin interface for ChatRoom model."""

    list_display = [
        "room_id",
        "listing_id",
        "seller",
        "buyer",
        "created_at",
        "last_message_at",
    ]
    list_filter = ["created_at"]
    search_fields = ["room_id", "listing_id", "seller__email", "buyer__email"]
    readonly_fields = ["room_id", "created_at", "updated_at", "last_message_at"]
    raw_id_fields = ["seller", "buyer"]
    inlines = [MessageInline]
    ordering = ["-created_at"]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = ["id", "room", "sender", "content_preview", "timestamp", "is_read"]
    list_filter = ["is_read", "timestamp"]
    search_fields = ["content", "sender__email", "room__room_id"]
    readonly_fields = ["timestamp"]
    raw_id_fields = ["room", "sender"]
    ordering = ["-timestamp"]

    @admin.display(description="Content")
    def content_preview(self, obj):
        """Show truncated content."""
        if len(obj.content) > 50:
            return obj.content[:50] + "..."
        return obj.content
