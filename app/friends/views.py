"""
Friendship views.

Endpoints (prefixed with /api/v1/users/):
    search/?username=<q>               - Find users by username (GET)
    friend-request/send/<user_id>/     - Send a request (POST)
    friend-request/accept/<user_id>/   - Accept a request from user_id (POST)
    friend-request/reject/<user_id>/   - Reject a request from user_id (POST)
    friend-requests/pending/           - Users who sent me a request (GET)
    friends/                           - My friends (GET)
    friend/remove/<user_id>/           - Remove a friend (DELETE)

Related files:
    - services.py: FriendshipService
    - serializers.py: Search result serializer
"""

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.serializers import PublicUserSerializer
from friends.serializers import UserSearchResultSerializer
from friends.services import FriendshipService


class UserSearchView(APIView):
    """GET /api/v1/users/search/?username=<q>"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Search users by username",
        tags=["Friends"],
        parameters=[
            OpenApiParameter(
                "username", OpenApiTypes.STR, OpenApiParameter.QUERY, required=True
            )
        ],
        responses={200: UserSearchResultSerializer(many=True)},
    )
    def get(self, request):
        users = FriendshipService.search(
            request.user, request.query_params.get("username", "")
        )
        return Response(UserSearchResultSerializer(users, many=True).data)


class SendFriendRequestView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Send a friend request",
        tags=["Friends"],
        request=None,
        responses={
            201: OpenApiResponse(description="Request sent"),
            404: OpenApiResponse(description="User not found"),
            409: OpenApiResponse(description="Already friends or already requested"),
        },
    )
    def post(self, request, user_id):
        FriendshipService.send_request(request.user, user_id)
        return Response(
            {"message": "Friend request sent"}, status=status.HTTP_201_CREATED
        )


class AcceptFriendRequestView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Accept a friend request",
        tags=["Friends"],
        request=None,
        responses={
            200: PublicUserSerializer,
            404: OpenApiResponse(description="No pending request from this user"),
        },
    )
    def post(self, request, user_id):
        friend = FriendshipService.accept_request(request.user, user_id)
        return Response(PublicUserSerializer(friend).data)


class RejectFriendRequestView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(summary="Reject a friend request", tags=["Friends"], request=None)
    def post(self, request, user_id):
        FriendshipService.reject_request(request.user, user_id)
        return Response({"message": "Friend request rejected"})


class PendingFriendRequestsView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Users who sent me a friend request",
        tags=["Friends"],
        responses={200: PublicUserSerializer(many=True)},
    )
    def get(self, request):
        users = FriendshipService.pending(request.user)
        return Response(PublicUserSerializer(users, many=True).data)


class FriendListView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="My friends",
        tags=["Friends"],
        responses={200: PublicUserSerializer(many=True)},
    )
    def get(self, request):
        users = FriendshipService.friends(request.user)
        return Response(PublicUserSerializer(users, many=True).data)


class RemoveFriendView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Remove a friend",
        tags=["Friends"],
        responses={
            200: OpenApiResponse(description="Friend removed"),
            404: OpenApiResponse(description="Not friends"),
        },
    )
    def delete(self, request, user_id):
        FriendshipService.remove_friend(request.user, user_id)
        return Response({"message": "Friend removed"})
