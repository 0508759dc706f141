"""
Friendship services.

FriendshipService owns both halves of the identity graph:
    - FriendRequest rows (pending, directional)
    - User.friends edges (accepted, symmetric)

Accepting a request deletes the request and inserts both friendship rows in
one transaction. Django writes both directions of a symmetrical
many-to-many in a single INSERT, so a half-applied friendship can only come
from writes made outside this service. reconcile() repairs those and runs
periodically (see tasks.py).

Live events (best effort, after commit):
    friend-request-received -> the addressee
    friend-request-accepted -> the original sender
    friend-removed          -> the removed friend
"""

from __future__ import annotations

from django.db.models import Exists, OuterRef, Q, QuerySet

from core.exceptions import ConflictError, NotFoundError, ValidationError
from core.services import BaseService

from authentication.models import User
from authentication.serializers import PublicUserSerializer
from chat.delivery import get_router
from chat.events import Event, EventKind
from friends.models import FriendRequest

Friendship = User.friends.through


class FriendshipService(BaseService):
    """
    Friend requests and friendships.

    Usage:
        FriendshipService.send_request(request.user, other_id)
        FriendshipService.accept_request(request.user, from_user_id)
        friends = FriendshipService.friends(request.user)
    """

    @classmethod
    def _get_user(cls, user_id) -> User:
        user = User.objects.filter(pk=user_id, is_active=True).first()
        if user is None:
            raise NotFoundError("User not found", error_code="USER_NOT_FOUND")
        return user

    @classmethod
    def _notify(cls, user_id: int, kind: str, counterpart: User) -> None:
        payload = {"user": PublicUserSerializer(counterpart).data}
        cls.on_commit(
            lambda: get_router().send_to_user(user_id, Event(kind, payload))
        )

    @classmethod
    def search(cls, requester: User, username_query: str) -> QuerySet[User]:
        """
        Find users whose username contains username_query.

        Each result is annotated with the requester's relationship to it:
        is_friend, request_sent, request_received.

        Raises:
            ValidationError: Empty query
        """
        query = (username_query or "").strip()
        if not query:
            raise ValidationError(
                "Search query is required", error_code="EMPTY_QUERY"
            )

        return (
            User.objects.filter(username__icontains=query, is_active=True)
            .exclude(pk=requester.pk)
            .annotate(
                is_friend=Exists(
                    Friendship.objects.filter(
                        from_user_id=requester.pk, to_user_id=OuterRef("pk")
                    )
                ),
                request_sent=Exists(
                    FriendRequest.objects.filter(
                        from_user_id=requester.pk, to_user_id=OuterRef("pk")
                    )
                ),
                request_received=Exists(
                    FriendRequest.objects.filter(
                        from_user_id=OuterRef("pk"), to_user_id=requester.pk
                    )
                ),
            )
            .order_by("username")
        )

    @classmethod
    def send_request(cls, from_user: User, to_user_id) -> FriendRequest:
        """
        Send a friend request.

        Both user rows are locked in pk order before the checks, so two
        users requesting each other at the same time cannot both succeed.

        Raises:
            ValidationError: Request to self
            NotFoundError: Unknown target
            ConflictError: ALREADY_FRIENDS, REQUEST_ALREADY_SENT or
                REQUEST_ALREADY_RECEIVED
        """
        if str(to_user_id) == str(from_user.pk):
            raise ValidationError(
                "You cannot send a friend request to yourself",
                error_code="SELF_FRIEND_REQUEST",
            )
        to_user = cls._get_user(to_user_id)

        with cls.atomic():
            list(
                User.objects.select_for_update()
                .filter(pk__in=[from_user.pk, to_user.pk])
                .order_by("pk")
            )

            if from_user.friends.filter(pk=to_user.pk).exists():
                raise ConflictError(
                    "You are already friends with this user",
                    error_code="ALREADY_FRIENDS",
                )
            if FriendRequest.objects.filter(
                from_user=from_user, to_user=to_user
            ).exists():
                raise ConflictError(
                    "Friend request already sent", error_code="REQUEST_ALREADY_SENT"
                )
            if FriendRequest.objects.filter(
                from_user=to_user, to_user=from_user
            ).exists():
                raise ConflictError(
                    "This user has already sent you a friend request",
                    error_code="REQUEST_ALREADY_RECEIVED",
                )

            friend_request = FriendRequest.objects.create(
                from_user=from_user, to_user=to_user
            )
            cls._notify(to_user.pk, EventKind.FRIEND_REQUEST_RECEIVED, from_user)

        cls.get_logger().info(
            f"Friend request {friend_request.id}: {from_user.id} -> {to_user.id}"
        )
        return friend_request

    @classmethod
    def accept_request(cls, user: User, from_user_id) -> User:
        """
        Accept a pending request from from_user_id.

        Returns:
            The new friend

        Raises:
            NotFoundError: No pending request from that user
        """
        with cls.atomic():
            deleted, _ = FriendRequest.objects.filter(
                from_user_id=from_user_id, to_user=user
            ).delete()
            if not deleted:
                raise NotFoundError(
                    "Friend request not found", error_code="REQUEST_NOT_FOUND"
                )
            friend = cls._get_user(from_user_id)
            user.friends.add(friend)
            # A crossing request in the other direction is now moot
            FriendRequest.objects.filter(from_user=user, to_user=friend).delete()

        cls._notify(friend.pk, EventKind.FRIEND_REQUEST_ACCEPTED, user)
        cls.get_logger().info(f"Users {user.id} and {friend.id} are now friends")
        return friend

    @classmethod
    def reject_request(cls, user: User, from_user_id) -> None:
        """Drop a pending request. Rejecting a missing request is a no-op."""
        deleted, _ = FriendRequest.objects.filter(
            from_user_id=from_user_id, to_user=user
        ).delete()
        if deleted:
            cls.get_logger().info(
                f"User {user.id} rejected friend request from {from_user_id}"
            )

    @classmethod
    def pending(cls, user: User) -> QuerySet[User]:
        """Users with a pending request addressed to user."""
        return User.objects.filter(sent_friend_requests__to_user=user).order_by(
            "-sent_friend_requests__created_at"
        )

    @classmethod
    def friends(cls, user: User) -> QuerySet[User]:
        return user.friends.order_by("username")

    @classmethod
    def remove_friend(cls, user: User, friend_id) -> None:
        """
        Remove a friendship in both directions.

        Raises:
            NotFoundError: Not friends
        """
        deleted, _ = Friendship.objects.filter(
            Q(from_user_id=user.pk, to_user_id=friend_id)
            | Q(from_user_id=friend_id, to_user_id=user.pk)
        ).delete()
        if not deleted:
            raise NotFoundError(
                "You are not friends with this user", error_code="NOT_FRIENDS"
            )

        cls._notify(int(friend_id), EventKind.FRIEND_REMOVED, user)
        cls.get_logger().info(f"Users {user.id} and {friend_id} are no longer friends")

    @classmethod
    def reconcile(cls) -> dict:
        """
        Restore friendship invariants.

        - Every friendship edge has its reverse edge
        - No pending request exists between two users who are friends
        - Two users never have requests pending in both directions; the
          older request (created_at, id) is kept

        Returns:
            {"edges_repaired": int, "requests_removed": int}
        """
        missing_reverse = Friendship.objects.filter(
            ~Exists(
                Friendship.objects.filter(
                    from_user_id=OuterRef("to_user_id"),
                    to_user_id=OuterRef("from_user_id"),
                )
            )
        ).values_list("from_user_id", "to_user_id")

        with cls.atomic():
            repairs = [
                Friendship(from_user_id=to_id, to_user_id=from_id)
                for from_id, to_id in missing_reverse
            ]
            Friendship.objects.bulk_create(repairs, ignore_conflicts=True)

            stale_requests = FriendRequest.objects.filter(
                Exists(
                    Friendship.objects.filter(
                        from_user_id=OuterRef("from_user_id"),
                        to_user_id=OuterRef("to_user_id"),
                    )
                )
            )
            removed, _ = stale_requests.delete()

            crossing_requests = FriendRequest.objects.filter(
                Exists(
                    FriendRequest.objects.filter(
                        from_user_id=OuterRef("to_user_id"),
                        to_user_id=OuterRef("from_user_id"),
                    ).filter(
                        Q(created_at__lt=OuterRef("created_at"))
                        | Q(created_at=OuterRef("created_at"), pk__lt=OuterRef("pk"))
                    )
                )
            )
            collapsed, _ = crossing_requests.delete()
            removed += collapsed

        result = {"edges_repaired": len(repairs), "requests_removed": removed}
        if repairs or removed:
            cls.get_logger().warning(f"Friendship reconcile repaired state: {result}")
        return result
