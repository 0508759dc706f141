"""
URL configuration for chat API.

Two URL sets, mounted separately by config/urls.py:
    conversation_urlpatterns -> /api/v1/conversations/
    message_urlpatterns      -> /api/v1/messages/
"""

from django.urls import path

from chat.views import (
    AddParticipantView,
    ConversationListView,
    ConversationMessagesView,
    CreateGroupView,
    DeleteMessageView,
    FindOrCreateConversationView,
    LeaveGroupView,
    MarkAsReadView,
    RemoveParticipantView,
    SendMessageView,
    SidebarUsersView,
    UpdateGroupView,
)

conversation_urlpatterns = [
    path("", ConversationListView.as_view(), name="list"),
    path(
        "find/<int:user_id>/",
        FindOrCreateConversationView.as_view(),
        name="find-or-create",
    ),
    path("create-group/", CreateGroupView.as_view(), name="create-group"),
    path(
        "<int:conversation_id>/update/", UpdateGroupView.as_view(), name="update-group"
    ),
    path(
        "<int:conversation_id>/add/",
        AddParticipantView.as_view(),
        name="add-participant",
    ),
    path(
        "<int:conversation_id>/remove/<int:participant_id>/",
        RemoveParticipantView.as_view(),
        name="remove-participant",
    ),
    path("<int:conversation_id>/leave/", LeaveGroupView.as_view(), name="leave-group"),
]

message_urlpatterns = [
    path("users/", SidebarUsersView.as_view(), name="sidebar-users"),
    path("send/<int:conversation_id>/", SendMessageView.as_view(), name="send"),
    path("delete/<int:message_id>/", DeleteMessageView.as_view(), name="delete"),
    path(
        "mark-as-read/<int:conversation_id>/",
        MarkAsReadView.as_view(),
        name="mark-as-read",
    ),
    path("<int:conversation_id>/", ConversationMessagesView.as_view(), name="list"),
]
