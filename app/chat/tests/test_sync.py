"""
Tests for ConversationCache.

Pure unit tests on plain dicts shaped like the REST and websocket payloads;
no database involved.
"""

import copy

import pytest

from chat.events import Event, EventKind
from chat.sync import ConversationCache

OWNER = 1
OTHER = 2
CONVERSATION = 10


def make_message(message_id, created_at, sender=OTHER, read_by=(), **overrides):
    message = {
        "id": message_id,
        "conversation": CONVERSATION,
        "sender": {"id": sender, "username": f"user{sender}"},
        "text": f"message {message_id}",
        "image": "",
        "read_by": list(read_by),
        "is_deleted": False,
        "created_at": created_at,
        "updated_at": created_at,
    }
    message.update(overrides)
    return message


def make_conversation(conversation_id=CONVERSATION, sequence=0, **overrides):
    conversation = {
        "id": conversation_id,
        "is_group_chat": False,
        "group_name": "",
        "participants": [{"id": OTHER}],
        "latest_message": None,
        "unread_count": 0,
        "sequence": sequence,
        "updated_at": "2026-01-01T10:00:00Z",
    }
    conversation.update(overrides)
    return conversation


def frame(kind, payload, conversation_id=CONVERSATION, sequence=None):
    return {
        "event": kind,
        "payload": payload,
        "conversation_id": conversation_id,
        "sequence": sequence,
    }


@pytest.fixture
def cache():
    cache = ConversationCache(owner_id=OWNER)
    cache.load_conversations([make_conversation()])
    return cache


class TestMessageEvents:
    def test_created_message_is_inserted_and_becomes_preview(self, cache):
        message = make_message(100, "2026-01-01T10:05:00Z")

        assert cache.apply(frame(EventKind.MESSAGE_CREATED, message, sequence=1))

        assert cache.messages_for(CONVERSATION) == [message]
        assert cache.conversations[CONVERSATION]["latest_message"]["id"] == 100
        assert cache.last_sequence(CONVERSATION) == 1

    def test_duplicate_created_is_a_noop(self, cache):
        message = make_message(100, "2026-01-01T10:05:00Z")
        cache.apply(frame(EventKind.MESSAGE_CREATED, message, sequence=1))

        assert cache.apply(frame(EventKind.MESSAGE_CREATED, message, sequence=1)) is False
        assert len(cache.messages_for(CONVERSATION)) == 1

    def test_messages_ordered_by_created_at_then_id(self, cache):
        cache.apply(frame(EventKind.MESSAGE_CREATED, make_message(3, "2026-01-01T10:06:00Z")))
        cache.apply(frame(EventKind.MESSAGE_CREATED, make_message(2, "2026-01-01T10:05:00Z")))
        cache.apply(frame(EventKind.MESSAGE_CREATED, make_message(1, "2026-01-01T10:05:00Z")))

        assert [m["id"] for m in cache.messages_for(CONVERSATION)] == [1, 2, 3]

    def test_older_message_does_not_replace_preview(self, cache):
        cache.apply(frame(EventKind.MESSAGE_CREATED, make_message(2, "2026-01-01T10:06:00Z")))
        cache.apply(frame(EventKind.MESSAGE_CREATED, make_message(1, "2026-01-01T10:05:00Z")))

        assert cache.conversations[CONVERSATION]["latest_message"]["id"] == 2

    def test_deleted_replaces_in_place(self, cache):
        original = make_message(100, "2026-01-01T10:05:00Z")
        cache.apply(frame(EventKind.MESSAGE_CREATED, original))
        deleted = make_message(100, "2026-01-01T10:05:00Z", text="", is_deleted=True)

        assert cache.apply(frame(EventKind.MESSAGE_DELETED, deleted))

        [message] = cache.messages_for(CONVERSATION)
        assert message["is_deleted"] is True
        assert message["text"] == ""
        assert cache.conversations[CONVERSATION]["latest_message"]["is_deleted"] is True

    def test_late_created_copy_does_not_revive_deleted_message(self, cache):
        deleted = make_message(100, "2026-01-01T10:05:00Z", text="", is_deleted=True)
        cache.apply(frame(EventKind.MESSAGE_DELETED, deleted))

        cache.load_messages(CONVERSATION, [make_message(100, "2026-01-01T10:05:00Z")])

        [message] = cache.messages_for(CONVERSATION)
        assert message["is_deleted"] is True
        assert message["text"] == ""


class TestReadReceipts:
    def test_receipts_are_a_union(self, cache):
        cache.load_messages(
            CONVERSATION, [make_message(100, "2026-01-01T10:05:00Z", sender=OWNER)]
        )

        cache.apply(
            frame(EventKind.READ_RECEIPT_UPDATED, {"reader_id": 5, "message_ids": [100]})
        )
        cache.apply(
            frame(EventKind.READ_RECEIPT_UPDATED, {"reader_id": 2, "message_ids": [100]})
        )

        assert cache.messages_for(CONVERSATION)[0]["read_by"] == [2, 5]

    def test_receipts_survive_an_older_copy(self, cache):
        cache.load_messages(CONVERSATION, [make_message(100, "2026-01-01T10:05:00Z")])
        cache.apply(
            frame(EventKind.READ_RECEIPT_UPDATED, {"reader_id": OWNER, "message_ids": [100]})
        )

        cache.load_messages(CONVERSATION, [make_message(100, "2026-01-01T10:05:00Z")])

        assert cache.messages_for(CONVERSATION)[0]["read_by"] == [OWNER]

    def test_repeated_receipt_reports_no_change(self, cache):
        cache.load_messages(CONVERSATION, [make_message(100, "2026-01-01T10:05:00Z")])
        receipt = frame(
            EventKind.READ_RECEIPT_UPDATED, {"reader_id": OWNER, "message_ids": [100]}
        )

        assert cache.apply(receipt) is True
        assert cache.apply(receipt) is False

    def test_receipt_before_created_is_kept(self, cache):
        cache.apply(
            frame(
                EventKind.READ_RECEIPT_UPDATED,
                {"reader_id": OTHER, "message_ids": [100]},
                sequence=3,
            )
        )

        cache.apply(
            frame(
                EventKind.MESSAGE_CREATED,
                make_message(100, "2026-01-01T10:05:00Z", sender=OWNER),
                sequence=2,
            )
        )

        assert cache.messages_for(CONVERSATION)[0]["read_by"] == [OTHER]
        assert cache.conversations[CONVERSATION]["latest_message"]["read_by"] == [OTHER]
        assert cache.pending_receipts == {}

    def test_early_receipts_are_dropped_with_their_conversation(self, cache):
        cache.apply(
            frame(EventKind.READ_RECEIPT_UPDATED, {"reader_id": OTHER, "message_ids": [100]})
        )

        cache.apply(
            frame(EventKind.CONVERSATION_REMOVED, {"conversation_id": CONVERSATION})
        )

        assert cache.pending_receipts == {}

    def test_unread_count_excludes_own_and_read(self, cache):
        cache.load_messages(
            CONVERSATION,
            [
                make_message(1, "2026-01-01T10:01:00Z"),
                make_message(2, "2026-01-01T10:02:00Z"),
                make_message(3, "2026-01-01T10:03:00Z", sender=OWNER),
            ],
        )
        assert cache.unread_count(CONVERSATION) == 2

        cache.apply(
            frame(EventKind.READ_RECEIPT_UPDATED, {"reader_id": OWNER, "message_ids": [1]})
        )

        assert cache.unread_count(CONVERSATION) == 1

    def test_unread_count_falls_back_to_server_value(self):
        cache = ConversationCache(owner_id=OWNER)
        cache.load_conversations([make_conversation(unread_count=4)])

        assert cache.unread_count(CONVERSATION) == 4


class TestConversationEvents:
    def test_stale_update_is_ignored(self, cache):
        cache.apply(
            frame(
                EventKind.CONVERSATION_UPDATED,
                make_conversation(group_name="new", sequence=5),
                sequence=5,
            )
        )

        changed = cache.apply(
            frame(
                EventKind.CONVERSATION_UPDATED,
                make_conversation(group_name="old", sequence=3),
                sequence=3,
            )
        )

        assert changed is False
        assert cache.conversations[CONVERSATION]["group_name"] == "new"
        assert cache.last_sequence(CONVERSATION) == 5

    def test_update_keeps_newer_local_preview(self, cache):
        cache.apply(frame(EventKind.MESSAGE_CREATED, make_message(100, "2026-01-01T10:05:00Z")))

        cache.apply(
            frame(
                EventKind.CONVERSATION_UPDATED,
                make_conversation(group_name="renamed", latest_message=None),
                sequence=2,
            )
        )

        conversation = cache.conversations[CONVERSATION]
        assert conversation["group_name"] == "renamed"
        assert conversation["latest_message"]["id"] == 100

    def test_new_conversation_is_added(self, cache):
        cache.apply(
            frame(EventKind.CONVERSATION_UPDATED, make_conversation(11), conversation_id=11)
        )

        assert set(cache.conversations) == {CONVERSATION, 11}

    def test_removed_drops_conversation_and_messages(self, cache):
        cache.load_messages(CONVERSATION, [make_message(100, "2026-01-01T10:05:00Z")])

        assert cache.apply(
            frame(EventKind.CONVERSATION_REMOVED, {"conversation_id": CONVERSATION})
        )

        assert CONVERSATION not in cache.conversations
        assert cache.messages_for(CONVERSATION) == []
        assert cache.last_sequence(CONVERSATION) is None

    def test_sidebar_orders_by_latest_activity(self, cache):
        cache.load_conversations(
            [make_conversation(11, updated_at="2026-01-01T09:00:00Z")]
        )
        cache.apply(
            frame(
                EventKind.MESSAGE_CREATED,
                {**make_message(200, "2026-01-01T11:00:00Z"), "conversation": 11},
                conversation_id=11,
            )
        )

        assert [c["id"] for c in cache.sidebar()] == [11, CONVERSATION]


class TestPresenceEvents:
    def test_snapshot_then_changes(self, cache):
        cache.apply(frame(EventKind.ONLINE_USERS, {"user_ids": [1, 2]}, conversation_id=None))
        cache.apply(
            frame(EventKind.PRESENCE_CHANGED, {"user_id": 3, "online": True}, conversation_id=None)
        )
        cache.apply(
            frame(EventKind.PRESENCE_CHANGED, {"user_id": 2, "online": False}, conversation_id=None)
        )

        assert cache.online == {1, 3}

    def test_repeated_presence_reports_no_change(self, cache):
        online = frame(
            EventKind.PRESENCE_CHANGED, {"user_id": 3, "online": True}, conversation_id=None
        )

        assert cache.apply(online) is True
        assert cache.apply(online) is False


class TestApply:
    def test_accepts_event_objects(self, cache):
        event = Event(
            EventKind.MESSAGE_CREATED,
            make_message(100, "2026-01-01T10:05:00Z"),
            conversation_id=CONVERSATION,
            sequence=1,
        )

        assert cache.apply(event) is True

    def test_unknown_kind_is_ignored(self, cache):
        assert cache.apply(frame("friend-request-received", {"user": {}})) is False

    def test_replaying_a_stream_is_idempotent(self, cache):
        stream = [
            frame(EventKind.MESSAGE_CREATED, make_message(1, "2026-01-01T10:01:00Z"), sequence=1),
            frame(EventKind.READ_RECEIPT_UPDATED, {"reader_id": OWNER, "message_ids": [1]}, sequence=2),
            frame(
                EventKind.MESSAGE_DELETED,
                make_message(1, "2026-01-01T10:01:00Z", text="", is_deleted=True),
                sequence=3,
            ),
        ]
        for item in stream:
            cache.apply(item)
        once = copy.deepcopy(cache.messages_for(CONVERSATION))

        for item in stream:
            cache.apply(item)

        assert cache.messages_for(CONVERSATION) == once
        assert once[0]["read_by"] == [OWNER]
        assert once[0]["is_deleted"] is True
