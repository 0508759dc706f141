"""
Django admin configuration for friendship models.
"""

from django.contrib import admin

from friends.models import FriendRequest


@admin.register(FriendRequest)
class FriendRequestAdmin(admin.ModelAdmin):
    list_display = ("id", "from_user", "to_user", "created_at")
    search_fields = ("from_user__username", "to_user__username")
    raw_id_fields = ("from_user", "to_user")
    readonly_fields = ("created_at", "updated_at")
    ordering = ("-created_at",)
