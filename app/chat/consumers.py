"""
WebSocket consumer for live chat delivery.

Each browser tab or device opens one connection to ws/chat/. The
connection is keyed by user, not by conversation: everything the user
should see live arrives on it, routed by the DeliveryRouter.

Consumers:
    ChatConsumer: The per-connection handle

Authentication:
    JWTAuthMiddleware attaches the user to self.scope["user"]. Anonymous
    connections are closed with code 4001 before the handshake completes.

Lifecycle:
    connect    -> register channel_name in the PresenceRegistry, send the
                  online-users snapshot, announce presence-changed if this
                  was the user's first connection
    disconnect -> unregister only this channel_name, announce
                  presence-changed if it was the user's last connection

Message Types (from client):
    {"type": "ping"} -> {"type": "pong"}

Message Types (to client):
    Event frames: {"event", "payload", "conversation_id", "sequence"}
    {"type": "error", "message": str}
"""

from __future__ import annotations

import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from chat.constants import PRESENCE_CONFIG
from chat.delivery import get_registry, get_router
from chat.events import Event

logger = logging.getLogger(__name__)


class ChatConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for one live connection of one user.

    Attributes:
        user_id: Authenticated user's id (None until connected)
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id: int | None = None

    async def connect(self):
        user = self.scope.get("user")

        if not user or not user.is_authenticated:
            logger.warning("Rejected unauthenticated websocket connection")
            await self.close(code=PRESENCE_CONFIG.UNAUTHENTICATED_CLOSE_CODE)
            return

        await self.accept()
        self.user_id = user.id

        came_online = get_registry().connect(self.user_id, self.channel_name)
        router = get_router()

        snapshot = await database_sync_to_async(router.online_snapshot)(self.user_id)
        await self.send_json(snapshot.to_client_frame())

        if came_online:
            await database_sync_to_async(router.publish_presence)(self.user_id, True)

        logger.info(f"User {self.user_id} connected ({self.channel_name})")

    async def disconnect(self, close_code):
        if self.user_id is None:
            return

        went_offline = get_registry().disconnect(self.user_id, self.channel_name)
        if went_offline:
            await database_sync_to_async(get_router().publish_presence)(
                self.user_id, False
            )

        logger.info(
            f"User {self.user_id} disconnected ({self.channel_name}, code {close_code})"
        )

    async def receive_json(self, content):
        """
        Handle incoming client frames.

        Clients only read from this socket; all mutations go through the
        REST API. ping keeps intermediaries from closing an idle connection.
        """
        message_type = content.get("type") if isinstance(content, dict) else None

        if message_type == "ping":
            await self.send_json({"type": "pong"})
        else:
            await self.send_json(
                {
                    "type": "error",
                    "message": f"Unknown message type: {message_type}",
                }
            )

    async def chat_event(self, message):
        """
        Handle chat.event messages from the channel layer.

        Forwards the event to the WebSocket client.
        """
        await self.send_json(Event.from_channel_message(message).to_client_frame())
