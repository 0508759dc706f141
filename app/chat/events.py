"""
Live event envelope shared by the delivery router, the websocket consumer
and the client-side sync cache.

Every push a client receives is one Event:

    {
        "event": "message-created",
        "payload": {...},
        "conversation_id": 12,     # null for user-scoped events
        "sequence": 41             # per-conversation counter, null if none
    }

Kinds:
    Conversation-scoped: message-created, message-deleted,
        read-receipt-updated, conversation-updated, conversation-removed
    User-scoped: presence-changed, online-users, friend-request-received,
        friend-request-accepted, friend-removed
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from django.core.serializers.json import DjangoJSONEncoder


class EventKind:
    """Event kind identifiers."""

    MESSAGE_CREATED = "message-created"
    MESSAGE_DELETED = "message-deleted"
    READ_RECEIPT_UPDATED = "read-receipt-updated"
    CONVERSATION_UPDATED = "conversation-updated"
    CONVERSATION_REMOVED = "conversation-removed"
    PRESENCE_CHANGED = "presence-changed"
    ONLINE_USERS = "online-users"
    FRIEND_REQUEST_RECEIVED = "friend-request-received"
    FRIEND_REQUEST_ACCEPTED = "friend-request-accepted"
    FRIEND_REMOVED = "friend-removed"


# Channel layer message type; dispatched to ChatConsumer.chat_event
CHANNEL_MESSAGE_TYPE = "chat.event"


def to_plain(data: Any) -> Any:
    """
    Convert serializer output to plain JSON types.

    Channel layers serialize with msgpack, which knows nothing about
    datetimes, UUIDs or DRF's ReturnDict.
    """
    return json.loads(json.dumps(data, cls=DjangoJSONEncoder))


@dataclass(frozen=True)
class Event:
    kind: str
    payload: dict
    conversation_id: int | None = None
    sequence: int | None = None

    def to_channel_message(self) -> dict:
        return {
            "type": CHANNEL_MESSAGE_TYPE,
            "event": self.kind,
            "payload": to_plain(self.payload),
            "conversation_id": self.conversation_id,
            "sequence": self.sequence,
        }

    @classmethod
    def from_channel_message(cls, message: dict) -> Event:
        return cls(
            kind=message["event"],
            payload=message["payload"],
            conversation_id=message.get("conversation_id"),
            sequence=message.get("sequence"),
        )

    def to_client_frame(self) -> dict:
        return {
            "event": self.kind,
            "payload": self.payload,
            "conversation_id": self.conversation_id,
            "sequence": self.sequence,
        }
