"""
Delivery router: fan-out of live events to connected users.

Services call the router after their transaction commits (see
BaseService.on_commit). The router resolves recipients, looks up their live
handles in the PresenceRegistry and sends one channel layer message per
handle. ChatConsumer.chat_event forwards it to the websocket.

Recipient resolution:
    publish_to_conversation re-reads the participant list from the database
    at publish time, so a user removed a moment earlier is never included
    and a newly added user is.

Failure semantics:
    Best effort. A full channel drops that one push with a warning; any other
    channel layer error (Redis down, vanished handle) drops it with a logged
    traceback. The durable state is already committed and clients catch up
    by refetching. There is no retry and no queue.

Usage:
    from chat.delivery import get_router
    from chat.events import Event, EventKind

    get_router().publish_to_conversation(
        conversation.id,
        Event(EventKind.MESSAGE_CREATED, payload, conversation.id, sequence),
    )
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from asgiref.sync import async_to_sync
from channels.exceptions import ChannelFull
from channels.layers import get_channel_layer
from django.apps import apps

from chat.events import Event, EventKind

if TYPE_CHECKING:
    from chat.presence import PresenceRegistry

logger = logging.getLogger(__name__)


class DeliveryRouter:
    """
    Routes events to the live handles of their recipients.

    Args:
        registry: The process presence registry
        channel_layer: Channel layer to send on; resolved lazily from
            settings.CHANNEL_LAYERS when not given
    """

    def __init__(self, registry: PresenceRegistry, channel_layer=None):
        self.registry = registry
        self._channel_layer = channel_layer

    @property
    def channel_layer(self):
        if self._channel_layer is None:
            self._channel_layer = get_channel_layer()
        return self._channel_layer

    def send_to_user(self, user_id: int, event: Event) -> int:
        """
        Push event to every live handle of user_id.

        Returns:
            Number of handles the event was handed to (0 when offline)
        """
        handles = self.registry.handles_for(user_id)
        if not handles:
            return 0

        message = event.to_channel_message()
        delivered = 0
        for handle in handles:
            try:
                async_to_sync(self.channel_layer.send)(handle, message)
            except ChannelFull:
                logger.warning(
                    f"Dropped {event.kind} for user {user_id}: channel {handle} full"
                )
                continue
            except Exception as e:
                logger.exception(
                    f"Dropped {event.kind} for user {user_id} on {handle}: {e}"
                )
                continue
            delivered += 1

        logger.debug(f"Delivered {event.kind} to user {user_id} ({delivered} handle(s))")
        return delivered

    def publish_to_users(
        self,
        user_ids: Iterable[int],
        event: Event,
        exclude: Iterable[int] = (),
    ) -> int:
        excluded = set(exclude)
        return sum(
            self.send_to_user(user_id, event)
            for user_id in dict.fromkeys(user_ids)
            if user_id not in excluded
        )

    def publish_to_conversation(
        self,
        conversation_id: int,
        event: Event,
        exclude: Iterable[int] = (),
    ) -> int:
        """Push event to the conversation's current participants."""
        Participant = apps.get_model("chat", "Participant")
        participant_ids = Participant.objects.filter(
            conversation_id=conversation_id
        ).values_list("user_id", flat=True)
        return self.publish_to_users(list(participant_ids), event, exclude=exclude)

    def interested_user_ids(self, user_id: int) -> list[int]:
        """Friends plus everyone sharing a conversation with user_id."""
        User = apps.get_model("authentication", "User")
        Participant = apps.get_model("chat", "Participant")

        friend_ids = User.objects.filter(friends__id=user_id).values_list(
            "id", flat=True
        )
        co_participant_ids = (
            Participant.objects.filter(conversation__participants__user_id=user_id)
            .exclude(user_id=user_id)
            .values_list("user_id", flat=True)
        )
        return sorted(set(friend_ids) | set(co_participant_ids))

    def publish_presence(self, user_id: int, online: bool) -> int:
        """Announce a presence transition to friends and co-participants."""
        event = Event(
            EventKind.PRESENCE_CHANGED,
            {"user_id": user_id, "online": online},
        )
        recipients = [
            uid for uid in self.interested_user_ids(user_id) if self.registry.is_online(uid)
        ]
        return self.publish_to_users(recipients, event)

    def online_snapshot(self, user_id: int) -> Event:
        """Online-users event for a freshly connected user."""
        interested = set(self.interested_user_ids(user_id))
        online = [
            uid
            for uid in self.registry.online_user_ids()
            if uid in interested or uid == user_id
        ]
        return Event(EventKind.ONLINE_USERS, {"user_ids": online})


def get_router() -> DeliveryRouter:
    """The process-wide router created by ChatConfig.ready()."""
    return apps.get_app_config("chat").router


def get_registry() -> PresenceRegistry:
    return apps.get_app_config("chat").presence
