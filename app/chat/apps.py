"""
Chat application configuration.

This app provides the chat system with:
- Direct (1:1) and group conversations with a single group admin
- Messages with soft deletion and read receipts
- Live delivery over websockets

The app config owns the process-wide presence registry and delivery
router; see chat.delivery.get_router().
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"

    def ready(self):
        from chat.delivery import DeliveryRouter
        from chat.presence import PresenceRegistry

        self.presence = PresenceRegistry()
        self.router = DeliveryRouter(self.presence)
