"""
Authentication views.

This module provides API views for:
- Signup, login, logout and session check
- Password reset (request + redeem)
- Profile update (picture, username)

Related files:
    - serializers.py: Request/response serialization
    - services.py: Business logic (AuthService, CredentialService, ProfileService)
    - urls.py: URL routing

Session model:
    Signup and login set the JWT as an http-only cookie; logout clears it.
    Endpoints that run before a session exists disable authentication so a
    stale cookie cannot lock a user out of logging in again.
"""

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.serializers import (
    ForgotPasswordSerializer,
    LoginSerializer,
    ResetPasswordSerializer,
    SignupSerializer,
    UpdateProfileSerializer,
    UserSerializer,
)
from authentication.services import AuthService, CredentialService, ProfileService


class SignupView(APIView):
    """
    POST /api/v1/auth/signup/

    Creates the account and logs it in (sets the auth cookie).
    """

    authentication_classes = []
    permission_classes = [AllowAny]

    @extend_schema(
        summary="Sign up",
        tags=["Auth"],
        request=SignupSerializer,
        responses={
            201: UserSerializer,
            400: OpenApiResponse(description="Missing field or password too short"),
            409: OpenApiResponse(description="Email or username already taken"),
        },
    )
    def post(self, request):
        serializer = SignupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = AuthService.signup(**serializer.validated_data)

        response = Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
        return CredentialService.set_auth_cookie(
            response, CredentialService.issue_token(user)
        )


class LoginView(APIView):
    """
    POST /api/v1/auth/login/

    Request body:
        {"login_id": "<email or username>", "password": "..."}

    After repeated failures the 400 body carries show_reset and email so
    the client can offer a password reset.
    """

    authentication_classes = []
    permission_classes = [AllowAny]

    @extend_schema(
        summary="Log in with email or username",
        tags=["Auth"],
        request=LoginSerializer,
        responses={
            200: UserSerializer,
            400: OpenApiResponse(description="Invalid credentials"),
        },
    )
    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = AuthService.login(**serializer.validated_data)

        response = Response(UserSerializer(user).data)
        return CredentialService.set_auth_cookie(
            response, CredentialService.issue_token(user)
        )


class LogoutView(APIView):
    """POST /api/v1/auth/logout/ - clears the auth cookie."""

    authentication_classes = []
    permission_classes = [AllowAny]

    @extend_schema(summary="Log out", tags=["Auth"], request=None)
    def post(self, request):
        response = Response({"message": "Logged out successfully"})
        return CredentialService.clear_auth_cookie(response)


class CheckAuthView(APIView):
    """GET /api/v1/auth/check/ - returns the authenticated user."""

    permission_classes = [IsAuthenticated]

    @extend_schema(summary="Current user", tags=["Auth"], responses={200: UserSerializer})
    def get(self, request):
        return Response(UserSerializer(request.user).data)


class UpdateProfileView(APIView):
    """
    PUT /api/v1/auth/update-profile/

    Request body (at least one change):
        {"profile_pic": "data:image/png;base64,...", "username": "new_name"}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Update profile picture and/or username",
        tags=["Auth - Profile"],
        request=UpdateProfileSerializer,
        responses={
            200: UserSerializer,
            400: OpenApiResponse(description="Nothing to update"),
            403: OpenApiResponse(description="Username change cooldown active"),
            409: OpenApiResponse(description="Username already taken"),
            502: OpenApiResponse(description="Picture upload failed"),
        },
    )
    def put(self, request):
        serializer = UpdateProfileSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = ProfileService.update_profile(
            request.user,
            profile_pic=serializer.validated_data.get("profile_pic"),
            username=serializer.validated_data.get("username"),
        )
        return Response(UserSerializer(user).data)


class ForgotPasswordView(APIView):
    """
    POST /api/v1/auth/forgot-password/

    Always answers with the same message whether or not the account exists.
    """

    authentication_classes = []
    permission_classes = [AllowAny]

    @extend_schema(
        summary="Request a password reset email",
        tags=["Auth - Password"],
        request=ForgotPasswordSerializer,
    )
    def post(self, request):
        serializer = ForgotPasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        AuthService.forgot_password(serializer.validated_data["email"])

        return Response(
            {"message": "If that account exists, a reset link has been sent."}
        )


class ResetPasswordView(APIView):
    """POST /api/v1/auth/reset-password/<token>/"""

    authentication_classes = []
    permission_classes = [AllowAny]

    @extend_schema(
        summary="Set a new password using a reset token",
        tags=["Auth - Password"],
        request=ResetPasswordSerializer,
        responses={
            200: OpenApiResponse(description="Password updated"),
            400: OpenApiResponse(description="Invalid or expired token"),
        },
    )
    def post(self, request, token):
        serializer = ResetPasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        AuthService.reset_password(token, serializer.validated_data["password"])

        return Response({"message": "Password has been reset. Please log in."})
