"""
Chat application configuration.

This app provides buyer/seller chat about marketplace listings:
- One room per (listing, buyer) pair
- Append-only message history with read flags
- Real-time delivery over WebSocket
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"
