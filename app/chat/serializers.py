"""
Serializers for chat API.

This module provides serializers for the chat system:
- Conversation output, shaped for one requesting user
- Message output, including soft-deleted placeholders
- Request bodies for sending messages and managing groups

Serializer Hierarchy:
    ConversationSerializer: Conversation as seen by the requester
    MessageSerializer: Message with sender and read receipts

    SendMessageSerializer: Text and/or image
    CreateGroupSerializer: Group name and initial participants
    UpdateGroupSerializer: Group name and/or icon
    AddParticipantSerializer: User to add

Design Decisions:
    - The requester is removed from a conversation's participants here and
      nowhere else; every endpoint returning a conversation goes through
      ConversationSerializer with the requester in context
    - read_by is rendered as a sorted list of user ids
"""

from __future__ import annotations

from rest_framework import serializers

from authentication.serializers import PublicUserSerializer
from chat.constants import GROUP_CONFIG, MESSAGE_CONFIG
from chat.models import Conversation, Message


# =============================================================================
# Message Serializers
# =============================================================================


class MessageSerializer(serializers.ModelSerializer):
    """
    A message with its sender resolved.

    Deleted messages keep their id, conversation and timestamps; text and
    image come back empty and is_deleted is true.
    """

    sender = PublicUserSerializer(read_only=True)
    read_by = serializers.SerializerMethodField()

    class Meta:
        model = Message
        fields = [
            "id",
            "conversation",
            "sender",
            "text",
            "image",
            "read_by",
            "is_deleted",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_read_by(self, obj: Message) -> list[int]:
        return sorted(user.pk for user in obj.read_by.all())


class SendMessageSerializer(serializers.Serializer):
    """Either field may be omitted; the service rejects an empty message."""

    text = serializers.CharField(
        required=False,
        allow_blank=True,
        max_length=MESSAGE_CONFIG.MAX_TEXT_LENGTH,
    )
    image = serializers.CharField(required=False, allow_blank=True)


# =============================================================================
# Conversation Serializers
# =============================================================================


class ConversationSerializer(serializers.ModelSerializer):
    """
    A conversation as seen by one user.

    Context:
        user: The requester. Required; removed from participants.

    unread_count is present when the queryset was annotated with it
    (ConversationService.list_for_user), null otherwise.
    """

    participants = serializers.SerializerMethodField()
    latest_message = MessageSerializer(read_only=True)
    unread_count = serializers.SerializerMethodField()

    class Meta:
        model = Conversation
        fields = [
            "id",
            "is_group_chat",
            "group_name",
            "group_icon",
            "group_admin",
            "participants",
            "latest_message",
            "unread_count",
            "sequence",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_participants(self, obj: Conversation) -> list[dict]:
        requester = self.context["user"]
        others = [
            participant.user
            for participant in obj.participants.all()
            if participant.user_id != requester.pk
        ]
        return PublicUserSerializer(others, many=True).data

    def get_unread_count(self, obj: Conversation) -> int | None:
        return getattr(obj, "unread_count", None)


class CreateGroupSerializer(serializers.Serializer):
    group_name = serializers.CharField(max_length=GROUP_CONFIG.MAX_NAME_LENGTH)
    participants = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        help_text="Ids of the other members; the creator is added automatically",
    )


class UpdateGroupSerializer(serializers.Serializer):
    """At least one field must be present; the service enforces that."""

    group_name = serializers.CharField(
        required=False,
        allow_blank=True,
        max_length=GROUP_CONFIG.MAX_NAME_LENGTH,
    )
    group_icon = serializers.CharField(
        required=False,
        allow_blank=True,
        help_text="Base64 image or data URL",
    )


class AddParticipantSerializer(serializers.Serializer):
    participant_id = serializers.IntegerField(min_value=1)
