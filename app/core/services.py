"""
Base service layer patterns for business logic encapsulation.

Services encapsulate business logic separate from views and models.
Views handle HTTP concerns, models handle data, services handle logic.

Error Handling:
    Services raise core.exceptions classes for expected failures
    (ValidationError, NotAuthorizedError, NotFoundError, ConflictError,
    UpstreamServiceError). The REST layer maps them to responses, so a view
    body is just "call the service, serialize the result".

Usage:
    from core.exceptions import ConflictError
    from core.services import BaseService

    class FriendshipService(BaseService):
        @classmethod
        def send_request(cls, from_user, to_user):
            if FriendRequest.objects.filter(...).exists():
                raise ConflictError("Friend request already sent")

            with cls.atomic():
                request = FriendRequest.objects.create(...)

            cls.get_logger().info(f"Friend request {request.id} sent")
            return request
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from django.db import transaction

from core.exceptions import ValidationError

if TYPE_CHECKING:
    from collections.abc import Callable, Generator


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management
    - Post-commit side effects (live delivery, background tasks)

    Design Notes:
        - Use @classmethod (no instance state)
        - Raise core.exceptions for expected failures
        - Side effects that must not happen on rollback go through on_commit()
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        All database operations within this context manager are
        wrapped in a transaction. If any operation fails, all
        changes are rolled back.

        Example:
            with cls.atomic():
                request.delete()
                from_user.friends.add(to_user)
                # If the friendship insert fails, the request is restored
        """
        with transaction.atomic():
            yield

    @classmethod
    def on_commit(cls, func: Callable[[], None]) -> None:
        """
        Run func after the current transaction commits.

        Outside a transaction the callback runs immediately. A rolled back
        transaction discards the callback, so nothing is emitted for
        mutations that never became durable.

        Callbacks are registered as robust: an error raised by one is logged
        by Django and never reaches the caller, whose mutation is already
        committed.
        """
        transaction.on_commit(func, robust=True)

    @classmethod
    def validate_required(cls, **kwargs) -> None:
        """
        Validate that required fields are provided.

        Raises:
            ValidationError: with per-field details when any value is None
                or a blank string

        Example:
            cls.validate_required(email=email, password=password)
        """
        errors = {}
        for field_name, value in kwargs.items():
            if value is None or (isinstance(value, str) and not value.strip()):
                errors[field_name] = ["This field is required."]

        if errors:
            raise ValidationError(
                "All fields are required",
                error_code="VALIDATION_ERROR",
                details=errors,
            )
