"""
Authentication models.

This module defines the User model, which is also the identity store of the
chat system: profile fields, credential state and the friendship edges all
live on the user row or its join tables.

Related files:
    - managers.py: Custom user manager for email-based creation
    - services.py: AuthService / ProfileService business logic
    - friends/models.py: FriendRequest (pending friendship requests)

Security:
    - Passwords hashed with Django's password hashers
    - Password reset tokens are stored as SHA-256 digests, never in plaintext
"""

import re

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.core.exceptions import ValidationError
from django.db import models

from authentication.managers import UserManager

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{3,30}$")


def validate_username_format(value):
    """Validate username format: 3-30 chars, alphanumeric + _ + -."""
    if not USERNAME_PATTERN.match(value or ""):
        raise ValidationError(
            "Username must be 3-30 characters and contain only "
            "letters, numbers, underscores, and hyphens."
        )


class User(AbstractBaseUser, PermissionsMixin):
    """
    Chat user.

    Login accepts either the email or the username together with the
    password, so both are unique.

    Fields:
        email: Unique email address, used for password reset
        username: Unique public handle, changeable once per cooldown window
        full_name: Display name
        profile_pic: Public URL of the uploaded profile picture ("" if none)
        username_last_updated_at: Last time the username was changed
        failed_login_attempts: Consecutive wrong-password attempts
        password_reset_token: SHA-256 digest of the outstanding reset token
        password_reset_expires: Expiry of the outstanding reset token
        friends: Symmetric friendship edges (both rows written together)
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address",
    )
    username = models.CharField(
        max_length=30,
        unique=True,
        validators=[validate_username_format],
        help_text="Unique public username (3-30 chars: letters, numbers, _ and -)",
    )
    full_name = models.CharField(
        max_length=150,
        help_text="User's display name",
    )
    profile_pic = models.URLField(
        max_length=500,
        blank=True,
        default="",
        help_text="URL of the user's profile picture",
    )
    username_last_updated_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the username was last changed (cooldown enforcement)",
    )

    failed_login_attempts = models.PositiveIntegerField(
        default=0,
        help_text="Consecutive failed login attempts since the last success",
    )
    password_reset_token = models.CharField(
        max_length=64,
        blank=True,
        default="",
        db_index=True,
        help_text="SHA-256 digest of the outstanding password reset token",
    )
    password_reset_expires = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the outstanding password reset token expires",
    )

    friends = models.ManyToManyField(
        "self",
        symmetrical=True,
        blank=True,
        help_text="Accepted friends (symmetric)",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username", "full_name"]

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.username or self.email

    def get_full_name(self):
        return self.full_name or self.username

    def get_short_name(self):
        return self.username
