"""
URL configuration for the friends app (prefixed with /api/v1/users/).
"""

from django.urls import path

from friends.views import (
    AcceptFriendRequestView,
    FriendListView,
    PendingFriendRequestsView,
    RejectFriendRequestView,
    RemoveFriendView,
    SendFriendRequestView,
    UserSearchView,
)

app_name = "friends"

urlpatterns = [
    path("search/", UserSearchView.as_view(), name="search"),
    path(
        "friend-request/send/<int:user_id>/",
        SendFriendRequestView.as_view(),
        name="send-request",
    ),
    path(
        "friend-request/accept/<int:user_id>/",
        AcceptFriendRequestView.as_view(),
        name="accept-request",
    ),
    path(
        "friend-request/reject/<int:user_id>/",
        RejectFriendRequestView.as_view(),
        name="reject-request",
    ),
    path(
        "friend-requests/pending/",
        PendingFriendRequestsView.as_view(),
        name="pending-requests",
    ),
    path("friends/", FriendListView.as_view(), name="friends"),
    path(
        "friend/remove/<int:user_id>/", RemoveFriendView.as_view(), name="remove-friend"
    ),
]
