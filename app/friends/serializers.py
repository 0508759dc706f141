"""
Serializers for friendship endpoints.

Users are always rendered with the public field set; search results add
the requester's relationship flags computed by FriendshipService.search.
"""

from rest_framework import serializers

from authentication.serializers import PublicUserSerializer


class UserSearchResultSerializer(PublicUserSerializer):
    is_friend = serializers.BooleanField(read_only=True)
    request_sent = serializers.BooleanField(read_only=True)
    request_received = serializers.BooleanField(read_only=True)

    class Meta(PublicUserSerializer.Meta):
        fields = PublicUserSerializer.Meta.fields + [
            "is_friend",
            "request_sent",
            "request_received",
        ]
        read_only_fields = fields
