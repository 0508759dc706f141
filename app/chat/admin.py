"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Conversation management
- Participant viewing
- Message moderation
"""

from django.contrib import admin

from chat.models import Conversation, DirectConversationPair, Message, Participant


class ParticipantInline(admin.TabularInline):
    """Inline display of participants in conversation admin."""

    model = Participant
    extra = 0
    readonly_fields = ["joined_at"]
    raw_id_fields = ["user"]


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    """Admin interface for Conversation model."""

    list_display = [
        "id",
        "is_group_chat",
        "group_name",
        "group_admin",
        "sequence",
        "updated_at",
    ]
    list_filter = ["is_group_chat"]
    search_fields = ["group_name"]
    raw_id_fields = ["group_admin", "latest_message"]
    readonly_fields = ["sequence", "created_at", "updated_at"]
    inlines = [ParticipantInline]


@admin.register(DirectConversationPair)
class DirectConversationPairAdmin(admin.ModelAdmin):
    list_display = ["conversation", "user_lower", "user_higher"]
    raw_id_fields = ["conversation", "user_lower", "user_higher"]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = ["id", "conversation", "sender", "is_deleted", "created_at"]
    list_filter = ["is_deleted"]
    search_fields = ["text", "sender__username"]
    raw_id_fields = ["conversation", "sender"]
    readonly_fields = ["deleted_at", "created_at", "updated_at"]
