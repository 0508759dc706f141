"""
Views for chat API.

This module provides REST API endpoints for the chat system.

URL Structure:
    /api/v1/conversations/                                GET
    /api/v1/conversations/find/{user_id}/                 POST
    /api/v1/conversations/create-group/                   POST
    /api/v1/conversations/{id}/update/                    PUT
    /api/v1/conversations/{id}/add/                       PUT
    /api/v1/conversations/{id}/remove/{participant_id}/   PUT
    /api/v1/conversations/{id}/leave/                     POST

    /api/v1/messages/users/                               GET
    /api/v1/messages/{conversation_id}/                   GET
    /api/v1/messages/send/{conversation_id}/              POST
    /api/v1/messages/delete/{id}/                         DELETE
    /api/v1/messages/mark-as-read/{conversation_id}/      PUT

Design Decisions:
    - Views only parse input, call the service and serialize the result;
      failures surface as core.exceptions and are rendered by
      core.exception_handler
    - Conversations are always serialized with the requester in context
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.serializers import PublicUserSerializer
from chat.serializers import (
    AddParticipantSerializer,
    ConversationSerializer,
    CreateGroupSerializer,
    MessageSerializer,
    SendMessageSerializer,
    UpdateGroupSerializer,
)
from chat.services import ConversationService, MessageService


def conversation_response(conversation_id, user, status_code=status.HTTP_200_OK):
    conversation = ConversationService.get_for_user(conversation_id, user)
    return Response(
        ConversationSerializer(conversation, context={"user": user}).data,
        status=status_code,
    )


# =============================================================================
# Conversations
# =============================================================================


class ConversationListView(APIView):
    """GET /api/v1/conversations/ - sidebar, most recently active first."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List my conversations",
        tags=["Conversations"],
        responses={200: ConversationSerializer(many=True)},
    )
    def get(self, request):
        conversations = ConversationService.list_for_user(request.user)
        return Response(
            ConversationSerializer(
                conversations, many=True, context={"user": request.user}
            ).data
        )


class FindOrCreateConversationView(APIView):
    """
    POST /api/v1/conversations/find/<user_id>/

    Returns the direct conversation with user_id: 201 if it was just
    created, 200 if it already existed.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Find or start a direct conversation",
        tags=["Conversations"],
        request=None,
        responses={
            200: ConversationSerializer,
            201: ConversationSerializer,
            404: OpenApiResponse(description="User not found"),
        },
    )
    def post(self, request, user_id):
        conversation, created = ConversationService.find_or_create_direct(
            request.user, user_id
        )
        return conversation_response(
            conversation.pk,
            request.user,
            status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class CreateGroupView(APIView):
    """
    POST /api/v1/conversations/create-group/

    Request body:
        {"group_name": "Weekend", "participants": [2, 3]}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Create a group chat",
        tags=["Conversations - Groups"],
        request=CreateGroupSerializer,
        responses={
            201: ConversationSerializer,
            400: OpenApiResponse(description="Missing name or too few participants"),
        },
    )
    def post(self, request):
        serializer = CreateGroupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        conversation = ConversationService.create_group(
            request.user,
            serializer.validated_data["group_name"],
            serializer.validated_data["participants"],
        )
        return conversation_response(
            conversation.pk, request.user, status.HTTP_201_CREATED
        )


class UpdateGroupView(APIView):
    """PUT /api/v1/conversations/<id>/update/ - rename and/or new icon."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Update group name or icon",
        tags=["Conversations - Groups"],
        request=UpdateGroupSerializer,
        responses={
            200: ConversationSerializer,
            403: OpenApiResponse(description="Not the group admin"),
            502: OpenApiResponse(description="Icon upload failed"),
        },
    )
    def put(self, request, conversation_id):
        serializer = UpdateGroupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        ConversationService.update_group(
            conversation_id,
            request.user,
            group_name=serializer.validated_data.get("group_name"),
            group_icon=serializer.validated_data.get("group_icon"),
        )
        return conversation_response(conversation_id, request.user)


class AddParticipantView(APIView):
    """
    PUT /api/v1/conversations/<id>/add/

    Request body:
        {"participant_id": 7}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Add a participant to a group",
        tags=["Conversations - Groups"],
        request=AddParticipantSerializer,
        responses={
            200: ConversationSerializer,
            403: OpenApiResponse(description="Not the group admin"),
            409: OpenApiResponse(description="Already a participant"),
        },
    )
    def put(self, request, conversation_id):
        serializer = AddParticipantSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        ConversationService.add_participant(
            conversation_id, request.user, serializer.validated_data["participant_id"]
        )
        return conversation_response(conversation_id, request.user)


class RemoveParticipantView(APIView):
    """PUT /api/v1/conversations/<id>/remove/<participant_id>/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Remove a participant from a group",
        tags=["Conversations - Groups"],
        request=None,
        responses={
            200: ConversationSerializer,
            403: OpenApiResponse(description="Not the group admin"),
            409: OpenApiResponse(description="The admin cannot be removed"),
        },
    )
    def put(self, request, conversation_id, participant_id):
        ConversationService.remove_participant(
            conversation_id, request.user, participant_id
        )
        return conversation_response(conversation_id, request.user)


class LeaveGroupView(APIView):
    """POST /api/v1/conversations/<id>/leave/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Leave a group",
        tags=["Conversations - Groups"],
        request=None,
        responses={200: OpenApiResponse(description="Left the group")},
    )
    def post(self, request, conversation_id):
        conversation = ConversationService.leave_group(conversation_id, request.user)
        return Response(
            {
                "message": "You have left the group",
                "conversation_deleted": conversation is None,
            }
        )


# =============================================================================
# Messages
# =============================================================================


class SidebarUsersView(APIView):
    """GET /api/v1/messages/users/ - everyone except the requester."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Users to start a chat with",
        tags=["Messages"],
        responses={200: PublicUserSerializer(many=True)},
    )
    def get(self, request):
        users = MessageService.list_sidebar_users(request.user)
        return Response(PublicUserSerializer(users, many=True).data)


class ConversationMessagesView(APIView):
    """GET /api/v1/messages/<conversation_id>/ - full history, oldest first."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Messages of a conversation",
        tags=["Messages"],
        responses={
            200: MessageSerializer(many=True),
            403: OpenApiResponse(description="Not a participant"),
        },
    )
    def get(self, request, conversation_id):
        messages = MessageService.list_by_conversation(conversation_id, request.user)
        return Response(MessageSerializer(messages, many=True).data)


class SendMessageView(APIView):
    """
    POST /api/v1/messages/send/<conversation_id>/

    Request body (at least one field):
        {"text": "Hello", "image": "data:image/png;base64,..."}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Send a message",
        tags=["Messages"],
        request=SendMessageSerializer,
        responses={
            201: MessageSerializer,
            400: OpenApiResponse(description="Empty message"),
            403: OpenApiResponse(description="Not a participant"),
            502: OpenApiResponse(description="Image upload failed"),
        },
    )
    def post(self, request, conversation_id):
        serializer = SendMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        message = MessageService.append(
            conversation_id,
            request.user,
            text=serializer.validated_data.get("text"),
            image=serializer.validated_data.get("image"),
        )
        return Response(MessageSerializer(message).data, status=status.HTTP_201_CREATED)


class DeleteMessageView(APIView):
    """DELETE /api/v1/messages/delete/<id>/ - sender only."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Delete one of my messages",
        tags=["Messages"],
        responses={
            200: MessageSerializer,
            404: OpenApiResponse(description="No such message sent by you"),
        },
    )
    def delete(self, request, message_id):
        message = MessageService.soft_delete(message_id, request.user)
        return Response(MessageSerializer(message).data)


class MarkAsReadView(APIView):
    """PUT /api/v1/messages/mark-as-read/<conversation_id>/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Mark a conversation as read",
        tags=["Messages"],
        request=None,
        responses={200: OpenApiResponse(description="Ids of newly read messages")},
    )
    def put(self, request, conversation_id):
        message_ids = MessageService.mark_read(conversation_id, request.user)
        return Response({"message_ids": message_ids})
