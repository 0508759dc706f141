"""
Tests for FriendshipService.

Covers the request lifecycle (send, accept, reject), friendship removal,
search annotations, live notifications and the reconcile repair job.
"""

from unittest import mock

import pytest
from freezegun import freeze_time

from authentication.models import User
from chat.events import EventKind
from core.exceptions import ConflictError, NotFoundError, ValidationError
from friends.models import FriendRequest
from friends.services import Friendship, FriendshipService


def are_friends(user_a, user_b):
    return (
        Friendship.objects.filter(from_user=user_a, to_user=user_b).exists()
        and Friendship.objects.filter(from_user=user_b, to_user=user_a).exists()
    )


# =============================================================================
# TestSendRequest
# =============================================================================


class TestSendRequest:
    def test_creates_pending_request(self, ada, bob):
        friend_request = FriendshipService.send_request(ada, bob.pk)

        assert friend_request.from_user == ada
        assert friend_request.to_user == bob
        assert list(FriendshipService.pending(bob)) == [ada]

    def test_request_to_self_is_rejected(self, ada):
        with pytest.raises(ValidationError) as exc_info:
            FriendshipService.send_request(ada, ada.pk)

        assert exc_info.value.error_code == "SELF_FRIEND_REQUEST"

    def test_unknown_user(self, ada):
        with pytest.raises(NotFoundError) as exc_info:
            FriendshipService.send_request(ada, 999999)

        assert exc_info.value.error_code == "USER_NOT_FOUND"

    def test_duplicate_request(self, ada, bob):
        FriendshipService.send_request(ada, bob.pk)

        with pytest.raises(ConflictError) as exc_info:
            FriendshipService.send_request(ada, bob.pk)

        assert exc_info.value.error_code == "REQUEST_ALREADY_SENT"
        assert FriendRequest.objects.count() == 1

    def test_request_when_other_side_already_asked(self, ada, bob):
        FriendshipService.send_request(bob, ada.pk)

        with pytest.raises(ConflictError) as exc_info:
            FriendshipService.send_request(ada, bob.pk)

        assert exc_info.value.error_code == "REQUEST_ALREADY_RECEIVED"

    def test_both_users_are_locked_before_checking(self, ada, bob):
        with mock.patch.object(
            User.objects, "select_for_update", wraps=User.objects.select_for_update
        ) as lock:
            FriendshipService.send_request(ada, bob.pk)

        lock.assert_called_once_with()

    def test_rejected_request_sends_no_notification(
        self, ada, bob, channel_layer, django_capture_on_commit_callbacks
    ):
        channel_layer.connect(bob)
        FriendRequest.objects.create(from_user=bob, to_user=ada)

        with django_capture_on_commit_callbacks(execute=True):
            with pytest.raises(ConflictError):
                FriendshipService.send_request(ada, bob.pk)

        assert channel_layer.events_for(bob) == []
        assert FriendRequest.objects.count() == 1

    def test_request_to_friend(self, ada, bob):
        ada.friends.add(bob)

        with pytest.raises(ConflictError) as exc_info:
            FriendshipService.send_request(ada, bob.pk)

        assert exc_info.value.error_code == "ALREADY_FRIENDS"

    def test_addressee_is_notified_after_commit(
        self, ada, bob, channel_layer, django_capture_on_commit_callbacks
    ):
        channel_layer.connect(bob)

        with django_capture_on_commit_callbacks(execute=True):
            FriendshipService.send_request(ada, bob.pk)

        events = channel_layer.events_for(bob, EventKind.FRIEND_REQUEST_RECEIVED)
        assert len(events) == 1
        assert events[0].payload["user"]["id"] == ada.pk
        assert events[0].conversation_id is None


# =============================================================================
# TestAcceptAndReject
# =============================================================================


class TestAcceptRequest:
    def test_accept_creates_symmetric_friendship(self, ada, bob):
        FriendshipService.send_request(ada, bob.pk)

        friend = FriendshipService.accept_request(bob, ada.pk)

        assert friend == ada
        assert are_friends(ada, bob)
        assert not FriendRequest.objects.exists()
        assert list(FriendshipService.friends(ada)) == [bob]
        assert list(FriendshipService.friends(bob)) == [ada]

    def test_accept_without_request(self, ada, bob):
        with pytest.raises(NotFoundError) as exc_info:
            FriendshipService.accept_request(bob, ada.pk)

        assert exc_info.value.error_code == "REQUEST_NOT_FOUND"
        assert not are_friends(ada, bob)

    def test_only_addressee_can_accept(self, ada, bob):
        FriendshipService.send_request(ada, bob.pk)

        with pytest.raises(NotFoundError):
            FriendshipService.accept_request(ada, bob.pk)

        assert FriendRequest.objects.count() == 1

    def test_sender_is_notified(
        self, ada, bob, channel_layer, django_capture_on_commit_callbacks
    ):
        FriendshipService.send_request(ada, bob.pk)
        channel_layer.connect(ada)

        with django_capture_on_commit_callbacks(execute=True):
            FriendshipService.accept_request(bob, ada.pk)

        events = channel_layer.events_for(ada, EventKind.FRIEND_REQUEST_ACCEPTED)
        assert [event.payload["user"]["id"] for event in events] == [bob.pk]


class TestRejectRequest:
    def test_reject_removes_request(self, ada, bob):
        FriendshipService.send_request(ada, bob.pk)

        FriendshipService.reject_request(bob, ada.pk)

        assert not FriendRequest.objects.exists()
        assert not are_friends(ada, bob)

    def test_reject_missing_request_is_noop(self, ada, bob):
        FriendshipService.reject_request(bob, ada.pk)

        assert not FriendRequest.objects.exists()

    def test_request_can_be_sent_again_after_reject(self, ada, bob):
        FriendshipService.send_request(ada, bob.pk)
        FriendshipService.reject_request(bob, ada.pk)

        FriendshipService.send_request(ada, bob.pk)

        assert FriendRequest.objects.count() == 1


# =============================================================================
# TestRemoveFriend
# =============================================================================


class TestRemoveFriend:
    def test_removes_both_directions(self, ada, bob):
        ada.friends.add(bob)

        FriendshipService.remove_friend(ada, bob.pk)

        assert not Friendship.objects.exists()

    def test_not_friends(self, ada, bob):
        with pytest.raises(NotFoundError) as exc_info:
            FriendshipService.remove_friend(ada, bob.pk)

        assert exc_info.value.error_code == "NOT_FRIENDS"

    def test_removed_friend_is_notified(
        self, ada, bob, channel_layer, django_capture_on_commit_callbacks
    ):
        ada.friends.add(bob)
        channel_layer.connect(bob)

        with django_capture_on_commit_callbacks(execute=True):
            FriendshipService.remove_friend(ada, bob.pk)

        assert len(channel_layer.events_for(bob, EventKind.FRIEND_REMOVED)) == 1


# =============================================================================
# TestSearch
# =============================================================================


class TestSearch:
    def test_matches_substring_and_excludes_requester(self, ada, bob, carol):
        results = FriendshipService.search(ada, "o")

        assert [user.username for user in results] == ["bob", "carol"]

    def test_case_insensitive(self, ada, bob):
        assert [user.username for user in FriendshipService.search(ada, "BO")] == ["bob"]

    def test_annotates_relationship_flags(self, ada, bob, carol):
        ada.friends.add(bob)
        FriendshipService.send_request(carol, ada.pk)

        results = {user.username: user for user in FriendshipService.search(ada, "o")}

        assert results["bob"].is_friend is True
        assert results["bob"].request_received is False
        assert results["carol"].is_friend is False
        assert results["carol"].request_received is True
        assert results["carol"].request_sent is False

    def test_empty_query(self, ada):
        with pytest.raises(ValidationError) as exc_info:
            FriendshipService.search(ada, "  ")

        assert exc_info.value.error_code == "EMPTY_QUERY"


# =============================================================================
# TestReconcile
# =============================================================================


class TestReconcile:
    def test_repairs_missing_reverse_edge(self, ada, bob):
        Friendship.objects.create(from_user=ada, to_user=bob)

        result = FriendshipService.reconcile()

        assert result == {"edges_repaired": 1, "requests_removed": 0}
        assert are_friends(ada, bob)

    def test_removes_requests_between_friends(self, ada, bob):
        FriendRequest.objects.create(from_user=ada, to_user=bob)
        ada.friends.add(bob)

        result = FriendshipService.reconcile()

        assert result == {"edges_repaired": 0, "requests_removed": 1}
        assert not FriendRequest.objects.exists()

    def test_consistent_state_is_untouched(self, ada, bob, carol):
        ada.friends.add(bob)
        FriendRequest.objects.create(from_user=carol, to_user=ada)

        result = FriendshipService.reconcile()

        assert result == {"edges_repaired": 0, "requests_removed": 0}
        assert FriendRequest.objects.count() == 1

    def test_collapses_crossing_requests_keeping_the_older(self, ada, bob, carol):
        with freeze_time("2026-03-01 10:00:00"):
            FriendRequest.objects.create(from_user=ada, to_user=bob)
        with freeze_time("2026-03-01 10:00:05"):
            FriendRequest.objects.create(from_user=bob, to_user=ada)
            FriendRequest.objects.create(from_user=carol, to_user=ada)

        result = FriendshipService.reconcile()

        assert result == {"edges_repaired": 0, "requests_removed": 1}
        assert FriendRequest.objects.filter(from_user=ada, to_user=bob).exists()
        assert not FriendRequest.objects.filter(from_user=bob, to_user=ada).exists()
        assert FriendRequest.objects.count() == 2
