"""
Tests for DeliveryRouter.

A recording channel layer stands in for Redis; users are "connected" by
registering a handle for them in the presence registry.
"""

from channels.exceptions import ChannelFull

from chat.delivery import DeliveryRouter, get_registry, get_router
from chat.events import Event, EventKind
from chat.models import Message, Participant
from chat.services import MessageService


class FullChannelLayer:
    async def send(self, channel, message):
        raise ChannelFull()


class UnreachableChannelLayer:
    """Fails every send the way channels_redis does when Redis is down."""

    def __init__(self, broken=None):
        self.broken = broken
        self.sent = []

    async def send(self, channel, message):
        if self.broken is None or channel == self.broken:
            raise ConnectionError("redis down")
        self.sent.append(channel)


def message_event(conversation, sequence=1):
    return Event(
        EventKind.MESSAGE_CREATED,
        {"id": 1, "text": "hi"},
        conversation_id=conversation.pk,
        sequence=sequence,
    )


class TestSendToUser:
    def test_offline_user_gets_nothing(self, ada, channel_layer):
        delivered = get_router().send_to_user(
            ada.pk, Event(EventKind.ONLINE_USERS, {"user_ids": []})
        )

        assert delivered == 0
        assert channel_layer.sent == []

    def test_every_handle_receives_the_event(self, ada, channel_layer):
        get_registry().connect(ada.pk, "tab-a")
        get_registry().connect(ada.pk, "tab-b")

        delivered = get_router().send_to_user(
            ada.pk, Event(EventKind.ONLINE_USERS, {"user_ids": []})
        )

        assert delivered == 2
        assert sorted(channel for channel, _ in channel_layer.sent) == ["tab-a", "tab-b"]
        _, message = channel_layer.sent[0]
        assert message["type"] == "chat.event"
        assert message["event"] == EventKind.ONLINE_USERS

    def test_full_channel_is_skipped(self, ada):
        layer = FullChannelLayer()
        registry = get_registry()
        registry.connect(ada.pk, "tab-a")
        router = DeliveryRouter(registry, channel_layer=layer)

        assert router.send_to_user(ada.pk, Event(EventKind.ONLINE_USERS, {})) == 0

    def test_layer_error_skips_only_that_handle(self, ada):
        layer = UnreachableChannelLayer(broken="tab-a")
        registry = get_registry()
        registry.connect(ada.pk, "tab-a")
        registry.connect(ada.pk, "tab-b")
        router = DeliveryRouter(registry, channel_layer=layer)

        assert router.send_to_user(ada.pk, Event(EventKind.ONLINE_USERS, {})) == 1
        assert layer.sent == ["tab-b"]


class TestPublishToConversation:
    def test_reaches_current_participants_only(
        self, ada, bob, carol, dave, group, channel_layer
    ):
        channel_layer.connect(ada, bob, carol, dave)

        get_router().publish_to_conversation(group.pk, message_event(group))

        assert len(channel_layer.events_for(ada)) == 1
        assert len(channel_layer.events_for(bob)) == 1
        assert len(channel_layer.events_for(carol)) == 1
        assert channel_layer.events_for(dave) == []

    def test_membership_is_read_at_publish_time(self, ada, bob, group, channel_layer):
        channel_layer.connect(ada, bob)
        Participant.objects.filter(conversation=group, user=bob).delete()

        get_router().publish_to_conversation(group.pk, message_event(group))

        assert channel_layer.events_for(bob) == []
        assert len(channel_layer.events_for(ada)) == 1

    def test_exclude(self, ada, bob, direct, channel_layer):
        channel_layer.connect(ada, bob)

        get_router().publish_to_conversation(
            direct.pk, message_event(direct), exclude=[ada.pk]
        )

        assert channel_layer.events_for(ada) == []
        assert len(channel_layer.events_for(bob)) == 1

    def test_event_fields_survive_the_layer(self, ada, direct, channel_layer):
        channel_layer.connect(ada)

        get_router().publish_to_conversation(direct.pk, message_event(direct, 9))

        event = channel_layer.events_for(ada)[0]
        assert event == message_event(direct, 9)


class TestPresence:
    def test_interested_users_are_friends_and_co_participants(
        self, ada, bob, carol, dave, direct
    ):
        ada.friends.add(dave)

        assert get_router().interested_user_ids(ada.pk) == sorted([bob.pk, dave.pk])
        assert carol.pk not in get_router().interested_user_ids(ada.pk)

    def test_presence_goes_to_online_interested_users(
        self, ada, bob, carol, direct, channel_layer
    ):
        channel_layer.connect(bob, carol)

        get_router().publish_presence(ada.pk, True)

        events = channel_layer.events_for(bob, EventKind.PRESENCE_CHANGED)
        assert [event.payload for event in events] == [
            {"user_id": ada.pk, "online": True}
        ]
        assert channel_layer.events_for(carol) == []

    def test_online_snapshot_includes_self_and_interested(
        self, ada, bob, carol, direct
    ):
        registry = get_registry()
        for user in (ada, bob, carol):
            registry.connect(user.pk, f"handle-{user.pk}")

        snapshot = get_router().online_snapshot(ada.pk)

        assert snapshot.kind == EventKind.ONLINE_USERS
        assert snapshot.payload == {"user_ids": sorted([ada.pk, bob.pk])}


class TestLayerOutage:
    def test_sent_message_survives_an_unreachable_layer(
        self, ada, bob, direct, monkeypatch, django_capture_on_commit_callbacks
    ):
        monkeypatch.setattr(get_router(), "_channel_layer", UnreachableChannelLayer())
        get_registry().connect(bob.pk, "bob-tab")

        with django_capture_on_commit_callbacks(execute=True):
            message = MessageService.append(direct.pk, ada, text="still here")

        assert Message.objects.filter(conversation=direct).count() == 1
        assert message.text == "still here"
