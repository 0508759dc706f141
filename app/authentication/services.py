"""
Authentication services.

This module provides the business logic behind the auth endpoints:
- AuthService: signup, login, password reset
- CredentialService: JWT issue and the auth cookie
- ProfileService: profile picture and username changes

Related files:
    - models.py: User
    - tasks.py: Async password reset email
    - toolkit/services/media.py: Profile picture upload

Security:
    - Passwords hashed with Django's password hashers
    - Reset tokens are 32 random bytes; only their SHA-256 digest is stored
    - Reset tokens expire after AUTH_CONFIG.RESET_TOKEN_LIFETIME_SECONDS
"""

from __future__ import annotations

import math
from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.contrib.auth.models import update_last_login
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError
from django.db.models import F
from django.utils import timezone
from kombu.exceptions import OperationalError as BrokerError
from rest_framework_simplejwt.tokens import AccessToken

from core.exceptions import ConflictError, NotAuthorizedError, ValidationError
from core.helpers import generate_token, hash_string
from core.services import BaseService

from authentication.constants import AUTH_CONFIG
from authentication.exceptions import InvalidCredentialsError
from authentication.models import User, validate_username_format
from authentication.tasks import send_password_reset_email
from toolkit.services.media import MediaStore

if TYPE_CHECKING:
    from rest_framework.response import Response


class CredentialService(BaseService):
    """
    Token issue and invalidation.

    Tokens are simplejwt access tokens. "Invalidation" clears the cookie on
    the client; tokens are short-lived enough that no server-side
    blacklist is kept.
    """

    @classmethod
    def issue_token(cls, user: User) -> str:
        return str(AccessToken.for_user(user))

    @classmethod
    def set_auth_cookie(cls, response: Response, token: str) -> Response:
        """Attach the token to the response as the http-only auth cookie."""
        lifetime = settings.SIMPLE_JWT["ACCESS_TOKEN_LIFETIME"]
        response.set_cookie(
            settings.AUTH_COOKIE_NAME,
            token,
            max_age=int(lifetime.total_seconds()),
            httponly=True,
            samesite="Strict",
            secure=settings.AUTH_COOKIE_SECURE,
        )
        return response

    @classmethod
    def clear_auth_cookie(cls, response: Response) -> Response:
        response.delete_cookie(settings.AUTH_COOKIE_NAME, samesite="Strict")
        return response


class AuthService(BaseService):
    """
    Account lifecycle: signup, login, password reset.

    Usage:
        user = AuthService.signup(full_name, username, email, password)
        user = AuthService.login(login_id, password)
        AuthService.forgot_password(email)
        AuthService.reset_password(token, new_password)
    """

    @classmethod
    def _validate_password(cls, password: str) -> None:
        if len(password) < AUTH_CONFIG.MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must contain at least "
                f"{AUTH_CONFIG.MIN_PASSWORD_LENGTH} characters",
                error_code="PASSWORD_TOO_SHORT",
                details={"password": ["Too short"]},
            )

    @classmethod
    def signup(
        cls,
        full_name: str,
        username: str,
        email: str,
        password: str,
    ) -> User:
        """
        Create an account.

        Raises:
            ValidationError: Missing field, short password, bad username format
            ConflictError: EMAIL_EXISTS or USERNAME_TAKEN
        """
        cls.validate_required(
            full_name=full_name, username=username, email=email, password=password
        )
        cls._validate_password(password)

        try:
            validate_username_format(username)
        except DjangoValidationError as e:
            raise ValidationError(
                e.messages[0],
                error_code="INVALID_USERNAME",
                details={"username": e.messages},
            ) from e

        email = User.objects.normalize_email(email.strip())

        if User.objects.filter(email__iexact=email).exists():
            raise ConflictError("Email already exists", error_code="EMAIL_EXISTS")
        if User.objects.filter(username=username).exists():
            raise ConflictError("Username already taken", error_code="USERNAME_TAKEN")

        try:
            with cls.atomic():
                user = User.objects.create_user(
                    email=email,
                    password=password,
                    username=username,
                    full_name=full_name.strip(),
                )
        except IntegrityError as e:
            # Lost a race against a concurrent signup for the same email/username
            raise ConflictError(
                "Email or username already taken", error_code="ACCOUNT_EXISTS"
            ) from e

        cls.get_logger().info(f"User {user.id} signed up as '{user.username}'")
        return user

    @classmethod
    def login(cls, login_id: str, password: str) -> User:
        """
        Verify credentials given an email or a username.

        Each wrong password increments the account's failed-login counter;
        once it reaches FAILED_LOGIN_RESET_THRESHOLD the error offers a reset.
        A successful login resets the counter.

        Raises:
            ValidationError: Missing field
            InvalidCredentialsError: Unknown account or wrong password
        """
        cls.validate_required(login_id=login_id, password=password)

        user = User.objects.get_by_login_id(login_id.strip())
        if user is None or not user.is_active:
            raise InvalidCredentialsError()

        if not user.check_password(password):
            User.objects.filter(pk=user.pk).update(
                failed_login_attempts=F("failed_login_attempts") + 1
            )
            user.refresh_from_db(fields=["failed_login_attempts"])
            show_reset = (
                user.failed_login_attempts >= AUTH_CONFIG.FAILED_LOGIN_RESET_THRESHOLD
            )
            cls.get_logger().warning(
                f"Failed login for user {user.id} "
                f"(attempt {user.failed_login_attempts})"
            )
            raise InvalidCredentialsError(
                show_reset=show_reset,
                email=user.email if show_reset else "",
            )

        if user.failed_login_attempts:
            User.objects.filter(pk=user.pk).update(failed_login_attempts=0)
            user.failed_login_attempts = 0
        update_last_login(None, user)

        cls.get_logger().info(f"User {user.id} logged in")
        return user

    @classmethod
    def forgot_password(cls, email: str) -> None:
        """
        Start a password reset.

        Always returns quietly so callers cannot tell which emails have
        accounts. When the account exists a fresh token digest is stored
        (replacing any earlier one) and the reset email is queued. A queueing
        failure is logged; the stored token stays valid and the user can
        simply ask again.
        """
        cls.validate_required(email=email)

        user = User.objects.filter(email__iexact=email.strip()).first()
        if user is None:
            cls.get_logger().info("Password reset requested for unknown email")
            return

        token = generate_token(AUTH_CONFIG.RESET_TOKEN_BYTES)
        expires = timezone.now() + timedelta(
            seconds=AUTH_CONFIG.RESET_TOKEN_LIFETIME_SECONDS
        )
        User.objects.filter(pk=user.pk).update(
            password_reset_token=hash_string(token),
            password_reset_expires=expires,
        )

        reset_url = f"{settings.FRONTEND_URL.rstrip('/')}/reset-password/{token}"
        try:
            send_password_reset_email.delay(user.email, reset_url)
        except BrokerError:
            cls.get_logger().exception(
                f"Could not queue password reset email for user {user.id}"
            )
            return

        cls.get_logger().info(f"Password reset email queued for user {user.id}")

    @classmethod
    def reset_password(cls, token: str, password: str) -> User:
        """
        Redeem a reset token.

        Raises:
            ValidationError: INVALID_RESET_TOKEN when the token is unknown or
                expired, PASSWORD_TOO_SHORT for a short password
        """
        cls.validate_required(password=password)
        cls._validate_password(password)

        user = User.objects.filter(
            password_reset_token=hash_string(token or ""),
            password_reset_expires__gt=timezone.now(),
        ).first()
        if user is None or not token:
            raise ValidationError(
                "Password reset link is invalid or has expired",
                error_code="INVALID_RESET_TOKEN",
            )

        user.set_password(password)
        user.password_reset_token = ""
        user.password_reset_expires = None
        user.failed_login_attempts = 0
        user.save(
            update_fields=[
                "password",
                "password_reset_token",
                "password_reset_expires",
                "failed_login_attempts",
                "updated_at",
            ]
        )

        cls.get_logger().info(f"User {user.id} reset their password")
        return user


class ProfileService(BaseService):
    """Profile picture and username changes."""

    @classmethod
    def update_profile(
        cls,
        user: User,
        profile_pic: str | None = None,
        username: str | None = None,
    ) -> User:
        """
        Update the profile picture and/or username.

        The username may change once per USERNAME_CHANGE_COOLDOWN_DAYS. All
        checks run before the picture is uploaded, and the upload happens
        before any write, so a failure leaves the profile untouched.

        Raises:
            ValidationError: NOTHING_TO_UPDATE or INVALID_USERNAME
            NotAuthorizedError: USERNAME_COOLDOWN (details carry days_left)
            ConflictError: USERNAME_TAKEN
            UpstreamServiceError: Picture upload failed
        """
        username = (username or "").strip()
        change_username = bool(username) and username != user.username

        if not profile_pic and not change_username:
            raise ValidationError(
                "No new data provided to update",
                error_code="NOTHING_TO_UPDATE",
            )

        updates = {}
        now = timezone.now()

        if change_username:
            cooldown = timedelta(days=AUTH_CONFIG.USERNAME_CHANGE_COOLDOWN_DAYS)
            last_change = user.username_last_updated_at
            if last_change and now - last_change < cooldown:
                remaining = cooldown - (now - last_change)
                days_left = math.ceil(remaining / timedelta(days=1))
                raise NotAuthorizedError(
                    f"You can change your username again in {days_left} day(s)",
                    error_code="USERNAME_COOLDOWN",
                    details={"days_left": days_left},
                )

            try:
                validate_username_format(username)
            except DjangoValidationError as e:
                raise ValidationError(
                    e.messages[0],
                    error_code="INVALID_USERNAME",
                    details={"username": e.messages},
                ) from e

            if User.objects.filter(username=username).exclude(pk=user.pk).exists():
                raise ConflictError(
                    "Username is already taken", error_code="USERNAME_TAKEN"
                )

            updates["username"] = username
            updates["username_last_updated_at"] = now

        if profile_pic:
            updates["profile_pic"] = MediaStore.upload(profile_pic)

        updates["updated_at"] = now
        try:
            with cls.atomic():
                User.objects.filter(pk=user.pk).update(**updates)
        except IntegrityError as e:
            raise ConflictError(
                "Username is already taken", error_code="USERNAME_TAKEN"
            ) from e

        user.refresh_from_db()
        cls.get_logger().info(
            f"User {user.id} updated profile ({', '.join(sorted(updates))})"
        )
        return user
