"""
Chat system service layer.

This module provides the business logic for the chat system, encapsulating
all operations on conversations, participants, and messages.

Services:
    ConversationService: Direct and group conversations, membership, admin
    MessageService: Send, soft delete, mark as read, history

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures raise core.exceptions
    - Every mutation of a conversation runs under a row lock on it, so
      concurrent mutations of the same conversation are serialized
    - Set-like state (participants, read receipts) is changed by inserting
      or deleting rows, never by rewriting a list
    - Live events are published after commit, carrying the conversation
      sequence value written by the mutation

Usage:
    from chat.services import ConversationService, MessageService

    conversation, created = ConversationService.find_or_create_direct(user, other_id)
    message = MessageService.append(conversation.id, user, text="Hello!")
    MessageService.mark_read(conversation.id, other_user)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import DatabaseError, IntegrityError
from django.db.models import Count, F, IntegerField, OuterRef, Prefetch, Q, Subquery
from django.db.models.functions import Coalesce
from django.utils import timezone

from core.exceptions import (
    ConflictError,
    NotAuthorizedError,
    NotFoundError,
    ValidationError,
)
from core.services import BaseService

from authentication.models import User
from chat.constants import GROUP_CONFIG, MESSAGE_CONFIG
from chat.delivery import get_router
from chat.events import Event, EventKind
from chat.models import (
    Conversation,
    DirectConversationPair,
    Message,
    Participant,
    ReadReceipt,
)
from chat.serializers import ConversationSerializer, MessageSerializer
from toolkit.services.media import MediaStore

if TYPE_CHECKING:
    from django.db.models import QuerySet


def conversation_queryset() -> QuerySet[Conversation]:
    """Conversations with everything ConversationSerializer reads."""
    return Conversation.objects.select_related(
        "latest_message__sender"
    ).prefetch_related(
        Prefetch("participants", queryset=Participant.objects.select_related("user")),
        "latest_message__read_by",
    )


def message_queryset() -> QuerySet[Message]:
    """Messages with everything MessageSerializer reads."""
    return Message.objects.select_related("sender").prefetch_related("read_by")


class ChatServiceMixin:
    """Lookups and checks shared by the chat services."""

    @classmethod
    def _get_conversation(cls, conversation_id, lock: bool = False) -> Conversation:
        queryset = Conversation.objects.all()
        if lock:
            queryset = queryset.select_for_update()
        conversation = queryset.filter(pk=conversation_id).first()
        if conversation is None:
            raise NotFoundError(
                "Conversation not found", error_code="CONVERSATION_NOT_FOUND"
            )
        return conversation

    @classmethod
    def _require_participant(cls, conversation: Conversation, user: User) -> None:
        if not conversation.has_participant(user.pk):
            raise NotAuthorizedError(
                "You are not a participant in this conversation",
                error_code="NOT_PARTICIPANT",
            )

    @classmethod
    def _advance_sequence(cls, conversation_id, touch: bool = True) -> int:
        """
        Increment the conversation's sequence and return the new value.

        Must run inside the mutating transaction. touch also moves
        updated_at, which reorders the conversation in sidebars.
        """
        updates = {"sequence": F("sequence") + 1}
        if touch:
            updates["updated_at"] = timezone.now()
        Conversation.objects.filter(pk=conversation_id).update(**updates)
        return Conversation.objects.values_list("sequence", flat=True).get(
            pk=conversation_id
        )


class ConversationService(ChatServiceMixin, BaseService):
    """
    Service for conversation lifecycle and membership.

    Methods:
        find_or_create_direct: The one direct conversation for a user pair
        create_group: New group with the creator as admin
        update_group: Rename / change icon (admin only)
        add_participant: Add a member (admin only)
        remove_participant: Remove a member other than the admin (admin only)
        leave_group: Leave, handing over admin or deleting the group
        list_for_user: Sidebar list, most recently active first
        update_latest_message: Best-effort preview pointer write
    """

    @classmethod
    def get_for_user(cls, conversation_id, user: User) -> Conversation:
        """Load a conversation for serialization, participants only."""
        conversation = conversation_queryset().filter(pk=conversation_id).first()
        if conversation is None:
            raise NotFoundError(
                "Conversation not found", error_code="CONVERSATION_NOT_FOUND"
            )
        cls._require_participant(conversation, user)
        return conversation

    @classmethod
    def _find_direct_pair(cls, lower_id, higher_id) -> DirectConversationPair | None:
        return (
            DirectConversationPair.objects.select_related("conversation")
            .filter(user_lower_id=lower_id, user_higher_id=higher_id)
            .first()
        )

    @classmethod
    def _require_group_admin(cls, conversation: Conversation, user: User) -> None:
        if not conversation.is_group_chat:
            raise ValidationError(
                "This action is only available for group chats",
                error_code="NOT_A_GROUP",
            )
        if conversation.group_admin_id != user.pk:
            raise NotAuthorizedError(
                "Only the group admin can do this", error_code="NOT_GROUP_ADMIN"
            )

    @classmethod
    def _publish_update(cls, conversation_id, sequence: int) -> None:
        """
        Schedule conversation-updated for every current participant.

        Each participant gets the conversation serialized for them, so the
        recipient is never listed among the participants.
        """

        def publish():
            conversation = conversation_queryset().filter(pk=conversation_id).first()
            if conversation is None:
                return
            router = get_router()
            for participant in conversation.participants.all():
                payload = ConversationSerializer(
                    conversation, context={"user": participant.user}
                ).data
                router.send_to_user(
                    participant.user_id,
                    Event(
                        EventKind.CONVERSATION_UPDATED,
                        payload,
                        conversation_id=conversation.pk,
                        sequence=sequence,
                    ),
                )

        cls.on_commit(publish)

    @classmethod
    def _publish_removed(cls, user_id: int, conversation_id, sequence: int | None) -> None:
        event = Event(
            EventKind.CONVERSATION_REMOVED,
            {"conversation_id": conversation_id},
            conversation_id=conversation_id,
            sequence=sequence,
        )
        cls.on_commit(lambda: get_router().send_to_user(user_id, event))

    @classmethod
    def find_or_create_direct(
        cls, user: User, other_user_id
    ) -> tuple[Conversation, bool]:
        """
        Return the direct conversation between user and other_user_id,
        creating it if needed.

        Two concurrent calls for the same pair both end up with the same
        conversation: the loser of the insert race hits the unique
        constraint on DirectConversationPair and re-reads the winner's row.

        Returns:
            (conversation, created)

        Raises:
            ValidationError: SAME_USER
            NotFoundError: USER_NOT_FOUND
        """
        if str(other_user_id) == str(user.pk):
            raise ValidationError(
                "Cannot start a conversation with yourself", error_code="SAME_USER"
            )
        other = User.objects.filter(pk=other_user_id, is_active=True).first()
        if other is None:
            raise NotFoundError("User not found", error_code="USER_NOT_FOUND")

        lower_id, higher_id = DirectConversationPair.canonical(user.pk, other.pk)
        pair = cls._find_direct_pair(lower_id, higher_id)
        if pair is not None:
            return pair.conversation, False

        try:
            with cls.atomic():
                conversation = Conversation.objects.create(is_group_chat=False)
                DirectConversationPair.objects.create(
                    conversation=conversation,
                    user_lower_id=lower_id,
                    user_higher_id=higher_id,
                )
                Participant.objects.bulk_create(
                    [
                        Participant(conversation=conversation, user_id=user.pk),
                        Participant(conversation=conversation, user_id=other.pk),
                    ]
                )
        except IntegrityError:
            pair = DirectConversationPair.objects.select_related("conversation").get(
                user_lower_id=lower_id, user_higher_id=higher_id
            )
            cls.get_logger().info(
                f"Lost direct conversation race for users {lower_id}/{higher_id}; "
                f"using {pair.conversation_id}"
            )
            return pair.conversation, False

        cls.get_logger().info(
            f"Created direct conversation {conversation.id} "
            f"between users {lower_id} and {higher_id}"
        )
        return conversation, True

    @classmethod
    def create_group(
        cls, admin: User, group_name: str, participant_ids: list
    ) -> Conversation:
        """
        Create a group with admin as creator and admin.

        Args:
            admin: Creator; becomes the group admin and first participant
            group_name: Display name
            participant_ids: The other members (creator excluded, duplicates
                ignored); at least GROUP_CONFIG.MIN_OTHER_PARTICIPANTS

        Raises:
            ValidationError: GROUP_NAME_REQUIRED, NOT_ENOUGH_PARTICIPANTS
            NotFoundError: USER_NOT_FOUND (details list the unknown ids)
        """
        group_name = (group_name or "").strip()
        if not group_name:
            raise ValidationError(
                "Group name is required", error_code="GROUP_NAME_REQUIRED"
            )

        other_ids = [
            uid for uid in dict.fromkeys(participant_ids or []) if uid != admin.pk
        ]
        if len(other_ids) < GROUP_CONFIG.MIN_OTHER_PARTICIPANTS:
            raise ValidationError(
                f"A group needs at least {GROUP_CONFIG.MIN_OTHER_PARTICIPANTS} "
                f"other participants",
                error_code="NOT_ENOUGH_PARTICIPANTS",
            )

        found_ids = set(
            User.objects.filter(pk__in=other_ids, is_active=True).values_list(
                "pk", flat=True
            )
        )
        missing = [uid for uid in other_ids if uid not in found_ids]
        if missing:
            raise NotFoundError(
                "Some participants do not exist",
                error_code="USER_NOT_FOUND",
                details={"participants": missing},
            )

        now = timezone.now()
        with cls.atomic():
            conversation = Conversation.objects.create(
                is_group_chat=True,
                group_name=group_name,
                group_admin=admin,
            )
            Participant.objects.bulk_create(
                [
                    Participant(conversation=conversation, user_id=uid, joined_at=now)
                    for uid in [admin.pk, *other_ids]
                ]
            )
            sequence = cls._advance_sequence(conversation.pk)

        cls._publish_update(conversation.pk, sequence)
        cls.get_logger().info(
            f"User {admin.id} created group {conversation.id} "
            f"with {len(other_ids) + 1} participants"
        )
        return conversation

    @classmethod
    def update_group(
        cls,
        conversation_id,
        requester: User,
        group_name: str | None = None,
        group_icon: str | None = None,
    ) -> Conversation:
        """
        Rename a group and/or change its icon.

        The icon is uploaded after the admin check and before any write.

        Raises:
            ValidationError: NOTHING_TO_UPDATE, NOT_A_GROUP
            NotAuthorizedError: NOT_GROUP_ADMIN
            NotFoundError: CONVERSATION_NOT_FOUND
            UpstreamServiceError: Icon upload failed
        """
        group_name = (group_name or "").strip()
        if not group_name and not group_icon:
            raise ValidationError(
                "No new data provided to update", error_code="NOTHING_TO_UPDATE"
            )

        conversation = cls._get_conversation(conversation_id)
        cls._require_group_admin(conversation, requester)

        updates = {}
        if group_name:
            updates["group_name"] = group_name
        if group_icon:
            updates["group_icon"] = MediaStore.upload(group_icon)

        with cls.atomic():
            conversation = cls._get_conversation(conversation_id, lock=True)
            cls._require_group_admin(conversation, requester)
            Conversation.objects.filter(pk=conversation.pk).update(**updates)
            sequence = cls._advance_sequence(conversation.pk)

        cls._publish_update(conversation.pk, sequence)
        cls.get_logger().info(
            f"User {requester.id} updated group {conversation.pk} "
            f"({', '.join(sorted(updates))})"
        )
        conversation.refresh_from_db()
        return conversation

    @classmethod
    def add_participant(cls, conversation_id, requester: User, user_id) -> Conversation:
        """
        Add user_id to a group.

        Raises:
            ValidationError: NOT_A_GROUP
            NotAuthorizedError: NOT_GROUP_ADMIN
            NotFoundError: CONVERSATION_NOT_FOUND, USER_NOT_FOUND
            ConflictError: ALREADY_PARTICIPANT
        """
        with cls.atomic():
            conversation = cls._get_conversation(conversation_id, lock=True)
            cls._require_group_admin(conversation, requester)

            user = User.objects.filter(pk=user_id, is_active=True).first()
            if user is None:
                raise NotFoundError("User not found", error_code="USER_NOT_FOUND")
            if conversation.has_participant(user.pk):
                raise ConflictError(
                    "User is already a participant",
                    error_code="ALREADY_PARTICIPANT",
                )

            Participant.objects.create(conversation=conversation, user=user)
            sequence = cls._advance_sequence(conversation.pk)

        cls._publish_update(conversation.pk, sequence)
        cls.get_logger().info(
            f"User {requester.id} added user {user.id} to group {conversation.pk}"
        )
        return conversation

    @classmethod
    def remove_participant(
        cls, conversation_id, requester: User, participant_id
    ) -> Conversation:
        """
        Remove a member from a group.

        The admin cannot be removed; an admin who wants out uses leave_group.

        Raises:
            ValidationError: NOT_A_GROUP
            NotAuthorizedError: NOT_GROUP_ADMIN
            NotFoundError: CONVERSATION_NOT_FOUND, NOT_A_PARTICIPANT
            ConflictError: CANNOT_REMOVE_ADMIN
        """
        with cls.atomic():
            conversation = cls._get_conversation(conversation_id, lock=True)
            cls._require_group_admin(conversation, requester)

            if str(participant_id) == str(conversation.group_admin_id):
                raise ConflictError(
                    "The group admin cannot be removed; the admin must leave "
                    "the group instead",
                    error_code="CANNOT_REMOVE_ADMIN",
                )

            deleted, _ = Participant.objects.filter(
                conversation=conversation, user_id=participant_id
            ).delete()
            if not deleted:
                raise NotFoundError(
                    "User is not a participant of this group",
                    error_code="NOT_A_PARTICIPANT",
                )
            sequence = cls._advance_sequence(conversation.pk)

        cls._publish_update(conversation.pk, sequence)
        cls._publish_removed(int(participant_id), conversation.pk, sequence)
        cls.get_logger().info(
            f"User {requester.id} removed user {participant_id} "
            f"from group {conversation.pk}"
        )
        return conversation

    @classmethod
    def leave_group(cls, conversation_id, user: User) -> Conversation | None:
        """
        Leave a group.

        If the leaver is the admin and others remain, the first remaining
        participant in stored order (joined_at, id) becomes admin. If the
        leaver was the last participant the group is deleted together with
        its messages.

        Returns:
            The conversation, or None if it was deleted

        Raises:
            ValidationError: NOT_A_GROUP
            NotAuthorizedError: NOT_PARTICIPANT
            NotFoundError: CONVERSATION_NOT_FOUND
        """
        with cls.atomic():
            conversation = cls._get_conversation(conversation_id, lock=True)
            if not conversation.is_group_chat:
                raise ValidationError(
                    "You can only leave group chats", error_code="NOT_A_GROUP"
                )

            deleted, _ = Participant.objects.filter(
                conversation=conversation, user=user
            ).delete()
            if not deleted:
                raise NotAuthorizedError(
                    "You are not a participant in this conversation",
                    error_code="NOT_PARTICIPANT",
                )

            next_admin_id = (
                Participant.objects.filter(conversation=conversation)
                .order_by("joined_at", "id")
                .values_list("user_id", flat=True)
                .first()
            )

            if next_admin_id is None:
                conversation.delete()
                sequence = None
            else:
                if conversation.group_admin_id == user.pk:
                    Conversation.objects.filter(pk=conversation.pk).update(
                        group_admin_id=next_admin_id
                    )
                    cls.get_logger().info(
                        f"Group {conversation.pk} admin passed from "
                        f"{user.id} to {next_admin_id}"
                    )
                sequence = cls._advance_sequence(conversation.pk)

        cls._publish_removed(user.pk, conversation_id, sequence)
        if sequence is None:
            cls.get_logger().info(
                f"Group {conversation_id} deleted after its last participant left"
            )
            return None

        cls._publish_update(conversation_id, sequence)
        cls.get_logger().info(f"User {user.id} left group {conversation_id}")
        conversation.refresh_from_db()
        return conversation

    @classmethod
    def list_for_user(cls, user: User) -> QuerySet[Conversation]:
        """
        The user's conversations, most recently active first.

        Each conversation is annotated with unread_count for the user.
        """
        unread = (
            Message.objects.filter(conversation=OuterRef("pk"))
            .exclude(sender=user)
            .exclude(receipts__user=user)
            .order_by()
            .values("conversation")
            .annotate(count=Count("pk"))
            .values("count")
        )
        return (
            conversation_queryset()
            .filter(participants__user=user)
            .annotate(
                unread_count=Coalesce(Subquery(unread, output_field=IntegerField()), 0)
            )
            .order_by("-updated_at", "-id")
        )

    @classmethod
    def update_latest_message(cls, conversation_id, message: Message) -> bool:
        """
        Point the conversation's preview at message if it is newer.

        Best effort: a failure is logged and leaves the previous pointer
        in place until the next successful write. Never raises.

        Returns:
            True if the pointer moved
        """
        newer = (
            Q(latest_message__isnull=True)
            | Q(latest_message__created_at__lt=message.created_at)
            | Q(
                latest_message__created_at=message.created_at,
                latest_message__id__lt=message.pk,
            )
        )
        try:
            updated = (
                Conversation.objects.filter(pk=conversation_id)
                .filter(newer)
                .update(latest_message=message, updated_at=timezone.now())
            )
        except DatabaseError:
            cls.get_logger().exception(
                f"Could not update latest message of conversation {conversation_id}"
            )
            return False
        return bool(updated)


class MessageService(ChatServiceMixin, BaseService):
    """
    Service for message operations.

    Methods:
        append: Send a message (text and/or image)
        soft_delete: Clear a message, keeping its place in history
        mark_read: Add the reader to read_by of every unread message
        list_by_conversation: History in creation order
        unread_count: Messages the user has not read
        list_sidebar_users: Everyone the user can start a chat with
    """

    @classmethod
    def append(
        cls,
        conversation_id,
        sender: User,
        text: str | None = None,
        image: str | None = None,
    ) -> Message:
        """
        Send a message.

        The image is uploaded before anything is written; an upload failure
        leaves no trace. After commit the conversation preview moves to the
        new message and message-created goes to the current participants.

        Raises:
            ValidationError: EMPTY_MESSAGE, MESSAGE_TOO_LONG
            NotFoundError: CONVERSATION_NOT_FOUND
            NotAuthorizedError: NOT_PARTICIPANT
            UpstreamServiceError: Image upload failed
        """
        text = (text or "").strip()
        if not text and not image:
            raise ValidationError(
                "Message must contain text or an image", error_code="EMPTY_MESSAGE"
            )
        if len(text) > MESSAGE_CONFIG.MAX_TEXT_LENGTH:
            raise ValidationError(
                f"Message cannot exceed {MESSAGE_CONFIG.MAX_TEXT_LENGTH} characters",
                error_code="MESSAGE_TOO_LONG",
            )

        conversation = cls._get_conversation(conversation_id)
        cls._require_participant(conversation, sender)

        image_url = MediaStore.upload(image) if image else ""

        with cls.atomic():
            conversation = cls._get_conversation(conversation_id, lock=True)
            cls._require_participant(conversation, sender)
            message = Message.objects.create(
                conversation=conversation,
                sender=sender,
                text=text,
                image=image_url,
            )
            sequence = cls._advance_sequence(conversation.pk, touch=False)

        message = message_queryset().get(pk=message.pk)
        event = Event(
            EventKind.MESSAGE_CREATED,
            MessageSerializer(message).data,
            conversation_id=conversation.pk,
            sequence=sequence,
        )

        def publish():
            ConversationService.update_latest_message(conversation.pk, message)
            get_router().publish_to_conversation(conversation.pk, event)

        cls.on_commit(publish)
        cls.get_logger().debug(
            f"User {sender.id} sent message {message.id} "
            f"to conversation {conversation.pk}"
        )
        return message

    @classmethod
    def soft_delete(cls, message_id, requester: User) -> Message:
        """
        Delete a message sent by requester.

        Messages of other users are reported as not found. Deleting an
        already deleted message returns it unchanged and emits nothing.

        Raises:
            NotFoundError: MESSAGE_NOT_FOUND
        """
        with cls.atomic():
            message = (
                Message.objects.select_for_update()
                .filter(pk=message_id, sender=requester)
                .first()
            )
            if message is None:
                raise NotFoundError(
                    "Message not found", error_code="MESSAGE_NOT_FOUND"
                )
            if message.is_deleted:
                return message_queryset().get(pk=message.pk)

            message.soft_delete()
            sequence = cls._advance_sequence(message.conversation_id, touch=False)

        message = message_queryset().get(pk=message.pk)
        event = Event(
            EventKind.MESSAGE_DELETED,
            MessageSerializer(message).data,
            conversation_id=message.conversation_id,
            sequence=sequence,
        )
        cls.on_commit(
            lambda: get_router().publish_to_conversation(message.conversation_id, event)
        )
        cls.get_logger().info(f"User {requester.id} deleted message {message.id}")
        return message

    @classmethod
    def mark_read(cls, conversation_id, reader: User) -> list[int]:
        """
        Mark every message of the conversation as read by reader.

        Idempotent: messages already read are skipped, and a concurrent
        call inserting the same receipt is absorbed by the unique
        constraint. read-receipt-updated is only emitted when something
        changed.

        Returns:
            Ids of the messages newly marked as read

        Raises:
            NotFoundError: CONVERSATION_NOT_FOUND
            NotAuthorizedError: NOT_PARTICIPANT
        """
        conversation = cls._get_conversation(conversation_id)
        cls._require_participant(conversation, reader)

        with cls.atomic():
            unread_ids = list(
                Message.objects.filter(conversation=conversation)
                .exclude(receipts__user=reader)
                .order_by("created_at", "id")
                .values_list("id", flat=True)
            )
            if not unread_ids:
                return []

            now = timezone.now()
            ReadReceipt.objects.bulk_create(
                [
                    ReadReceipt(message_id=message_id, user=reader, read_at=now)
                    for message_id in unread_ids
                ],
                ignore_conflicts=True,
            )
            sequence = cls._advance_sequence(conversation.pk, touch=False)

        event = Event(
            EventKind.READ_RECEIPT_UPDATED,
            {"reader_id": reader.pk, "message_ids": unread_ids},
            conversation_id=conversation.pk,
            sequence=sequence,
        )
        cls.on_commit(
            lambda: get_router().publish_to_conversation(conversation.pk, event)
        )
        cls.get_logger().debug(
            f"User {reader.id} read {len(unread_ids)} message(s) "
            f"in conversation {conversation.pk}"
        )
        return unread_ids

    @classmethod
    def list_by_conversation(cls, conversation_id, requester: User) -> QuerySet[Message]:
        """
        The conversation's messages in creation order, deleted ones included.

        Raises:
            NotFoundError: CONVERSATION_NOT_FOUND
            NotAuthorizedError: NOT_PARTICIPANT
        """
        conversation = cls._get_conversation(conversation_id)
        cls._require_participant(conversation, requester)
        return message_queryset().filter(conversation=conversation).order_by(
            "created_at", "id"
        )

    @classmethod
    def unread_count(cls, conversation_id, user: User) -> int:
        return (
            Message.objects.filter(conversation_id=conversation_id)
            .exclude(sender=user)
            .exclude(receipts__user=user)
            .count()
        )

    @classmethod
    def list_sidebar_users(cls, user: User) -> QuerySet[User]:
        return (
            User.objects.filter(is_active=True)
            .exclude(pk=user.pk)
            .order_by("full_name", "id")
        )
