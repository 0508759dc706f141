"""
Tests for friends API views.

All endpoints live under /api/v1/users/ and require authentication.
"""

from rest_framework import status
from rest_framework.test import APIClient

from friends.models import FriendRequest

SEARCH_URL = "/api/v1/users/search/"
PENDING_URL = "/api/v1/users/friend-requests/pending/"
FRIENDS_URL = "/api/v1/users/friends/"


def send_url(user):
    return f"/api/v1/users/friend-request/send/{user.pk}/"


def accept_url(user):
    return f"/api/v1/users/friend-request/accept/{user.pk}/"


def reject_url(user):
    return f"/api/v1/users/friend-request/reject/{user.pk}/"


def remove_url(user):
    return f"/api/v1/users/friend/remove/{user.pk}/"


class TestUserSearchView:
    def test_search_returns_flags(self, ada, bob, client_for):
        ada.friends.add(bob)

        response = client_for(ada).get(SEARCH_URL, {"username": "bo"})

        assert response.status_code == status.HTTP_200_OK
        assert response.data == [
            {
                "id": bob.pk,
                "username": "bob",
                "full_name": "Bob Stone",
                "profile_pic": "",
                "is_friend": True,
                "request_sent": False,
                "request_received": False,
            }
        ]

    def test_missing_query_returns_400(self, ada, client_for):
        response = client_for(ada).get(SEARCH_URL)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "EMPTY_QUERY"

    def test_requires_authentication(self, db):
        response = APIClient().get(SEARCH_URL, {"username": "bo"})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestFriendRequestFlow:
    def test_send_accept_and_list(self, ada, bob, client_for):
        response = client_for(ada).post(send_url(bob))
        assert response.status_code == status.HTTP_201_CREATED

        pending = client_for(bob).get(PENDING_URL)
        assert [user["id"] for user in pending.data] == [ada.pk]

        accepted = client_for(bob).post(accept_url(ada))
        assert accepted.status_code == status.HTTP_200_OK
        assert accepted.data["id"] == ada.pk

        assert [u["id"] for u in client_for(ada).get(FRIENDS_URL).data] == [bob.pk]
        assert [u["id"] for u in client_for(bob).get(FRIENDS_URL).data] == [ada.pk]
        assert client_for(bob).get(PENDING_URL).data == []

    def test_send_twice_returns_409(self, ada, bob, client_for):
        client_for(ada).post(send_url(bob))

        response = client_for(ada).post(send_url(bob))

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["error_code"] == "REQUEST_ALREADY_SENT"

    def test_send_to_self_returns_400(self, ada, client_for):
        response = client_for(ada).post(send_url(ada))

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_accept_without_request_returns_404(self, ada, bob, client_for):
        response = client_for(bob).post(accept_url(ada))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "REQUEST_NOT_FOUND"

    def test_reject(self, ada, bob, client_for):
        client_for(ada).post(send_url(bob))

        response = client_for(bob).post(reject_url(ada))

        assert response.status_code == status.HTTP_200_OK
        assert not FriendRequest.objects.exists()


class TestRemoveFriendView:
    def test_remove(self, ada, bob, client_for):
        ada.friends.add(bob)

        response = client_for(ada).delete(remove_url(bob))

        assert response.status_code == status.HTTP_200_OK
        assert client_for(bob).get(FRIENDS_URL).data == []

    def test_remove_non_friend_returns_404(self, ada, bob, client_for):
        response = client_for(ada).delete(remove_url(bob))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "NOT_FRIENDS"
