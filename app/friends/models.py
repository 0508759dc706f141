"""
Friendship models.

Models:
    FriendRequest: A pending request from one user to another

A user's "sent" set is FriendRequest.objects.filter(from_user=user) and the
"received" set is FriendRequest.objects.filter(to_user=user). Both views read
the same row, so a request can never appear on one side only.

Accepted friendships are the symmetric User.friends many-to-many; see
authentication.models.User.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from core.models import BaseModel


class FriendRequest(BaseModel):
    """
    A pending friend request.

    Deleted on accept (in the same transaction that adds the friendship)
    and on reject.

    Constraints:
        - One request per ordered (from_user, to_user) pair
        - A user cannot send a request to themselves
    """

    from_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_friend_requests",
        help_text="User who sent the request",
    )
    to_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="received_friend_requests",
        help_text="User the request is addressed to",
    )

    class Meta:
        db_table = "friends_friend_request"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["from_user", "to_user"],
                name="unique_friend_request_pair",
            ),
            models.CheckConstraint(
                condition=~Q(from_user=F("to_user")),
                name="friend_request_not_to_self",
            ),
        ]

    def __str__(self) -> str:
        return f"FriendRequest({self.from_user_id} -> {self.to_user_id})"
