"""
Serializers for authentication.

This module provides DRF serializers for:
- User output (private view for the account owner, public view for others)
- Signup, login, password reset and profile update requests

Related files:
    - views.py: Views that use these serializers
    - services.py: AuthService / ProfileService

Security:
    - Password fields are write-only
    - Credential state (failed logins, reset token) is never serialized
"""

from rest_framework import serializers

from authentication.models import User


class UserSerializer(serializers.ModelSerializer):
    """
    The authenticated user's own account.

    Returned by signup, login, check and update-profile.
    """

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "username",
            "full_name",
            "profile_pic",
            "username_last_updated_at",
            "date_joined",
        ]
        read_only_fields = fields


class PublicUserSerializer(serializers.ModelSerializer):
    """
    What other users get to see: conversation participants, message
    senders, search results and friend lists.
    """

    class Meta:
        model = User
        fields = ["id", "username", "full_name", "profile_pic"]
        read_only_fields = fields


class SignupSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=150)
    username = serializers.CharField(max_length=30)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)


class LoginSerializer(serializers.Serializer):
    """Credentials: login_id is either the email or the username."""

    login_id = serializers.CharField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)


class ForgotPasswordSerializer(serializers.Serializer):
    email = serializers.EmailField()


class ResetPasswordSerializer(serializers.Serializer):
    password = serializers.CharField(write_only=True, trim_whitespace=False)


class UpdateProfileSerializer(serializers.Serializer):
    """
    Profile changes. Both fields are optional but at least one must carry
    a change; the service enforces that.

    profile_pic is a base64 image or data URL.
    """

    profile_pic = serializers.CharField(required=False, allow_blank=True)
    username = serializers.CharField(required=False, allow_blank=True, max_length=30)
