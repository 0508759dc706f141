"""
Client-side reconciliation of live events.

ConversationCache is what a consuming client (a bot, an integration test,
a Python client of the API) keeps locally: the conversations and messages
it fetched over REST, kept current by applying pushed events.

Merge rules:
    message-created        insert by id; a repeat is a no-op
    message-deleted        replace in place (same id, cleared content)
    read-receipt-updated   set union into read_by, never an overwrite; a
                           receipt for a message not cached yet is held
                           until the message arrives
    conversation-updated   replace the record unless it is older than
                           the cached one (by sequence)
    conversation-removed   drop the conversation and its messages
    presence-changed       add to / remove from the online set
    online-users           replace the online set

Applying the same event twice, or receipts out of order, leaves the
cache in the same state as applying each once in order.

Usage:
    cache = ConversationCache(owner_id=me["id"])
    cache.load_conversations(client.get("/api/v1/conversations/").json())
    for frame in websocket:
        cache.apply(frame)
    cache.sidebar()
"""

from __future__ import annotations

import logging
from typing import Any

from chat.events import Event, EventKind

logger = logging.getLogger(__name__)


def _order_key(message: dict) -> tuple:
    return (message["created_at"], message["id"])


def _sender_id(message: dict) -> int | None:
    sender = message.get("sender")
    return sender["id"] if sender else None


class ConversationCache:
    """
    Local copy of one user's conversations, messages and contacts' presence.

    Args:
        owner_id: The user this cache belongs to
    """

    def __init__(self, owner_id: int):
        self.owner_id = owner_id
        self.conversations: dict[int, dict] = {}
        self.messages: dict[int, dict[int, dict]] = {}
        self.online: set[int] = set()
        self.sequences: dict[int, int] = {}
        # Readers of messages not cached yet, keyed by (conversation_id, message_id)
        self.pending_receipts: dict[tuple[int, int], set[int]] = {}

    # -------------------------------------------------------------------------
    # Loading REST results
    # -------------------------------------------------------------------------

    def load_conversations(self, conversations: list[dict]) -> None:
        for conversation in conversations:
            self.conversations[conversation["id"]] = dict(conversation)
            self._record_sequence(conversation["id"], conversation.get("sequence"))

    def load_messages(self, conversation_id: int, messages: list[dict]) -> None:
        for message in messages:
            self._merge_message(conversation_id, message)

    # -------------------------------------------------------------------------
    # Event application
    # -------------------------------------------------------------------------

    def apply(self, event: Event | dict) -> bool:
        """
        Merge one pushed event.

        Args:
            event: An Event or a client frame as received on the websocket

        Returns:
            True if the cache changed
        """
        if isinstance(event, dict):
            event = Event(
                kind=event["event"],
                payload=event["payload"],
                conversation_id=event.get("conversation_id"),
                sequence=event.get("sequence"),
            )

        handler = self._handlers().get(event.kind)
        if handler is None:
            logger.debug(f"Ignoring event {event.kind}")
            return False

        changed = handler(event)
        if event.conversation_id is not None and event.kind != EventKind.CONVERSATION_REMOVED:
            self._record_sequence(event.conversation_id, event.sequence)
        return changed

    def _handlers(self):
        return {
            EventKind.MESSAGE_CREATED: self._on_message_created,
            EventKind.MESSAGE_DELETED: self._on_message_deleted,
            EventKind.READ_RECEIPT_UPDATED: self._on_read_receipt,
            EventKind.CONVERSATION_UPDATED: self._on_conversation_updated,
            EventKind.CONVERSATION_REMOVED: self._on_conversation_removed,
            EventKind.PRESENCE_CHANGED: self._on_presence_changed,
            EventKind.ONLINE_USERS: self._on_online_users,
        }

    def _on_message_created(self, event: Event) -> bool:
        message = event.payload
        conversation_id = event.conversation_id or message["conversation"]
        if message["id"] in self.messages.get(conversation_id, {}):
            return False
        self._merge_message(conversation_id, message)
        return True

    def _on_message_deleted(self, event: Event) -> bool:
        message = event.payload
        conversation_id = event.conversation_id or message["conversation"]
        cached = self.messages.get(conversation_id, {}).get(message["id"])
        if cached is not None and cached.get("is_deleted"):
            return False
        self._merge_message(conversation_id, message)
        return True

    def _on_read_receipt(self, event: Event) -> bool:
        reader_id = event.payload["reader_id"]
        message_ids = set(event.payload["message_ids"])
        cached = self.messages.get(event.conversation_id, {})
        changed = False

        for message_id in message_ids:
            message = cached.get(message_id)
            if message is None:
                readers = self.pending_receipts.setdefault(
                    (event.conversation_id, message_id), set()
                )
                if reader_id not in readers:
                    readers.add(reader_id)
                    changed = True
            elif reader_id not in message["read_by"]:
                message["read_by"] = sorted({*message["read_by"], reader_id})
                changed = True

        preview = self._preview(event.conversation_id)
        if preview is not None and preview["id"] in message_ids:
            if reader_id not in preview["read_by"]:
                preview["read_by"] = sorted({*preview["read_by"], reader_id})
                changed = True
        return changed

    def _on_conversation_updated(self, event: Event) -> bool:
        conversation = dict(event.payload)
        conversation_id = conversation["id"]
        known = self.sequences.get(conversation_id)
        if known is not None and event.sequence is not None and event.sequence < known:
            return False

        previous = self.conversations.get(conversation_id)
        if previous is not None:
            # Keep whichever preview is newer
            kept = previous.get("latest_message")
            incoming = conversation.get("latest_message")
            if kept and (not incoming or _order_key(kept) > _order_key(incoming)):
                conversation["latest_message"] = kept
            if conversation.get("unread_count") is None:
                conversation["unread_count"] = previous.get("unread_count")
        self.conversations[conversation_id] = conversation
        return True

    def _on_conversation_removed(self, event: Event) -> bool:
        conversation_id = event.payload["conversation_id"]
        removed = self.conversations.pop(conversation_id, None) is not None
        removed = self.messages.pop(conversation_id, None) is not None or removed
        self.sequences.pop(conversation_id, None)
        for key in [key for key in self.pending_receipts if key[0] == conversation_id]:
            del self.pending_receipts[key]
        return removed

    def _on_presence_changed(self, event: Event) -> bool:
        user_id = event.payload["user_id"]
        if event.payload["online"]:
            if user_id in self.online:
                return False
            self.online.add(user_id)
        else:
            if user_id not in self.online:
                return False
            self.online.discard(user_id)
        return True

    def _on_online_users(self, event: Event) -> bool:
        online = set(event.payload["user_ids"])
        if online == self.online:
            return False
        self.online = online
        return True

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _record_sequence(self, conversation_id: int, sequence: int | None) -> None:
        if sequence is None:
            return
        self.sequences[conversation_id] = max(
            sequence, self.sequences.get(conversation_id, sequence)
        )

    def _preview(self, conversation_id: int) -> dict | None:
        conversation = self.conversations.get(conversation_id)
        if conversation is None:
            return None
        return conversation.get("latest_message")

    def _merge_message(self, conversation_id: int, message: dict) -> None:
        """
        Insert or replace a message.

        A deleted message never reverts and read_by only grows, whichever
        order the copies arrive in. Receipts that arrived before the message
        are folded in here.
        """
        bucket = self.messages.setdefault(conversation_id, {})
        merged = dict(message)
        early_readers = self.pending_receipts.pop(
            (conversation_id, message["id"]), set()
        )
        merged["read_by"] = sorted({*message["read_by"], *early_readers})
        cached = bucket.get(message["id"])
        if cached is not None:
            merged["read_by"] = sorted({*cached["read_by"], *merged["read_by"]})
            if cached.get("is_deleted") and not message.get("is_deleted"):
                merged.update(
                    text=cached["text"],
                    image=cached["image"],
                    is_deleted=True,
                )
        bucket[message["id"]] = merged

        conversation = self.conversations.get(conversation_id)
        if conversation is None:
            return
        preview = conversation.get("latest_message")
        if preview is None or _order_key(merged) > _order_key(preview):
            conversation["latest_message"] = dict(merged)
            conversation["updated_at"] = max(
                conversation.get("updated_at") or "", merged["created_at"]
            )
        elif preview["id"] == merged["id"]:
            conversation["latest_message"] = dict(merged)

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def messages_for(self, conversation_id: int) -> list[dict]:
        """The conversation's messages in (created_at, id) order."""
        return sorted(self.messages.get(conversation_id, {}).values(), key=_order_key)

    def last_sequence(self, conversation_id: int) -> int | None:
        return self.sequences.get(conversation_id)

    def sidebar(self) -> list[dict]:
        """Conversations, most recently active first."""

        def activity(conversation: dict) -> Any:
            preview = conversation.get("latest_message")
            latest = preview["created_at"] if preview else ""
            return max(conversation.get("updated_at") or "", latest)

        return sorted(self.conversations.values(), key=activity, reverse=True)

    def unread_count(self, conversation_id: int) -> int:
        """
        Messages not sent by and not read by the owner.

        Falls back to the server-computed count when no messages of the
        conversation have been loaded.
        """
        bucket = self.messages.get(conversation_id)
        if not bucket:
            conversation = self.conversations.get(conversation_id) or {}
            return conversation.get("unread_count") or 0
        return sum(
            1
            for message in bucket.values()
            if _sender_id(message) != self.owner_id
            and self.owner_id not in message["read_by"]
        )
