"""
Chat system models.

This module defines the data models for the chat system supporting:
- Direct (1:1) conversations between exactly two users
- Group conversations with a single admin

Models:
    Conversation: Container for messages between participants
    DirectConversationPair: Enforces one direct conversation per user pair
    Participant: Current membership of a user in a conversation
    Message: Individual message within a conversation
    ReadReceipt: One row per (message, reader)

Design Decisions:
    - Membership is one row per current participant; leaving deletes the row
    - Participant "stored order" is (joined_at, id), used for admin handover
    - Read receipts are join rows, so marking read is an INSERT, never a
      rewrite of a shared set
    - Conversation.latest_message is a denormalized pointer, best effort
    - Conversation.sequence counts live-event-producing mutations
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from core.model_mixins import SoftDeleteMixin
from core.models import BaseModel

logger = logging.getLogger(__name__)


def hand_over_group_admin(collector, field, sub_objs, using):
    """
    on_delete handler for Conversation.group_admin.

    When an admin account is deleted, each of its groups passes to the first
    remaining participant in stored order (joined_at, id), skipping users
    deleted in the same operation. A group left with nobody is deleted.
    """
    doomed_ids = {user.pk for user in collector.data.get(field.related_model, ())}
    orphaned = []
    for conversation in sub_objs:
        successor_id = (
            Participant.objects.using(using)
            .filter(conversation_id=conversation.pk)
            .exclude(user_id__in=doomed_ids)
            .order_by("joined_at", "id")
            .values_list("user_id", flat=True)
            .first()
        )
        if successor_id is None:
            orphaned.append(conversation)
            continue
        collector.add_field_update(field, successor_id, [conversation])
        logger.info(
            f"Group {conversation.pk} admin passed from deleted user "
            f"{conversation.group_admin_id} to {successor_id}"
        )

    if orphaned:
        models.CASCADE(collector, field, orphaned, using)


class Conversation(BaseModel):
    """
    A conversation between two or more users.

    Conversation Types:
        Direct (is_group_chat=False): Exactly 2 participants, no name, icon
            or admin. Unique per user pair (DirectConversationPair).

        Group (is_group_chat=True): 3+ participants at creation, named, with
            exactly one admin who is always a current participant. Deleted
            when its last participant leaves.

    Fields:
        is_group_chat: Group or direct
        group_name: Group display name ("" for direct)
        group_icon: Public URL of the group icon ("" if none)
        group_admin: Admin of a group (null for direct)
        latest_message: Sidebar preview pointer; may briefly lag behind
        sequence: Incremented by every mutation that emits a live event

    Note:
        updated_at doubles as "last activity" and orders the sidebar.
    """

    is_group_chat = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether this is a group conversation",
    )

    group_name = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Name of a group conversation (empty for direct)",
    )

    group_icon = models.URLField(
        max_length=500,
        blank=True,
        default="",
        help_text="URL of the group icon",
    )

    group_admin = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=hand_over_group_admin,
        null=True,
        blank=True,
        related_name="administered_conversations",
        help_text="Admin of a group conversation (null for direct)",
    )

    latest_message = models.ForeignKey(
        "Message",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Most recent message (denormalized for the sidebar)",
    )

    sequence = models.PositiveBigIntegerField(
        default=0,
        help_text="Per-conversation counter carried by live events",
    )

    class Meta:
        db_table = "chat_conversation"
        ordering = ["-updated_at"]
        indexes = [
            models.Index(fields=["-updated_at"], name="chat_conv_updated_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(is_group_chat=True) | Q(group_admin__isnull=True),
                name="chat_conv_direct_has_no_admin",
            ),
        ]

    def __str__(self) -> str:
        if self.is_group_chat:
            return f"Group: {self.group_name}" if self.group_name else f"Group({self.pk})"
        return f"Direct({self.pk})"

    def is_admin(self, user) -> bool:
        return self.is_group_chat and self.group_admin_id == user.pk

    def has_participant(self, user_id) -> bool:
        return self.participants.filter(user_id=user_id).exists()

    def participant_ids(self) -> list[int]:
        """Current participant ids in stored order."""
        return list(self.participants.values_list("user_id", flat=True))


class DirectConversationPair(models.Model):
    """
    Enforces uniqueness of direct conversations between two users.

    Stores the pair in canonical order (lower user id first). Two concurrent
    find-or-create calls for the same pair race on the unique constraint;
    the loser re-reads the winner's row.

    Constraints:
        - UniqueConstraint(user_lower, user_higher): One conversation per pair
        - CheckConstraint(user_lower_id < user_higher_id): Canonical order
    """

    conversation = models.OneToOneField(
        Conversation,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="direct_pair",
        help_text="The direct conversation this pair represents",
    )

    user_lower = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
        help_text="User with lower ID in this conversation pair",
    )

    user_higher = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
        help_text="User with higher ID in this conversation pair",
    )

    class Meta:
        db_table = "chat_direct_conversation_pair"
        constraints = [
            models.UniqueConstraint(
                fields=["user_lower", "user_higher"],
                name="unique_direct_conversation_pair",
            ),
            models.CheckConstraint(
                condition=Q(user_lower_id__lt=F("user_higher_id")),
                name="user_lower_less_than_higher",
            ),
        ]

    def __str__(self) -> str:
        return f"DirectPair({self.user_lower_id}, {self.user_higher_id})"

    @staticmethod
    def canonical(user_a_id: int, user_b_id: int) -> tuple[int, int]:
        return (user_a_id, user_b_id) if user_a_id < user_b_id else (user_b_id, user_a_id)


class Participant(models.Model):
    """
    A user's current membership in a conversation.

    Adding a participant inserts a row and removing or leaving deletes it,
    so concurrent membership changes never overwrite each other.
    """

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name="participants",
        help_text="Conversation this membership belongs to",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="conversation_participations",
        help_text="Member of the conversation",
    )

    joined_at = models.DateTimeField(
        default=timezone.now,
        help_text="When the user joined this conversation",
    )

    class Meta:
        db_table = "chat_participant"
        ordering = ["joined_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["conversation", "user"],
                name="unique_conversation_participant",
            ),
        ]
        indexes = [
            models.Index(
                fields=["user", "conversation"],
                name="chat_part_user_conv_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Participant: {self.user_id} in {self.conversation_id}"


class Message(SoftDeleteMixin, BaseModel):
    """
    A message within a conversation.

    A message carries text, an image URL, or both.

    Soft Delete Behavior:
        Deleting clears text and image and sets is_deleted. The row keeps
        its id, conversation and created_at, so it stays in place in the
        history as a placeholder. A deleted message never comes back.

    Read receipts:
        read_by only grows; rows are inserted by MessageService.mark_read
        and never removed.
    """

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name="messages",
        help_text="Conversation this message belongs to",
    )

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="sent_messages",
        help_text="User who sent this message",
    )

    text = models.TextField(
        blank=True,
        default="",
        help_text="Message text",
    )

    image = models.URLField(
        max_length=500,
        blank=True,
        default="",
        help_text="URL of an attached image",
    )

    read_by = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        through="ReadReceipt",
        related_name="read_messages",
        blank=True,
    )

    class Meta:
        db_table = "chat_message"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["conversation", "created_at", "id"],
                name="chat_msg_conv_order_idx",
            ),
        ]

    def __str__(self) -> str:
        if self.is_deleted:
            return f"User {self.sender_id}: [deleted]"
        preview = self.text[:50] + "..." if len(self.text) > 50 else self.text
        return f"User {self.sender_id}: {preview or '[image]'}"

    def get_soft_delete_updates(self) -> dict:
        updates = super().get_soft_delete_updates()
        updates.update(text="", image="")
        return updates


class ReadReceipt(models.Model):
    """A reader having seen a message."""

    message = models.ForeignKey(
        Message,
        on_delete=models.CASCADE,
        related_name="receipts",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="read_receipts",
    )
    read_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "chat_read_receipt"
        constraints = [
            models.UniqueConstraint(
                fields=["message", "user"],
                name="unique_read_receipt",
            ),
        ]

    def __str__(self) -> str:
        return f"ReadReceipt({self.message_id}, {self.user_id})"
