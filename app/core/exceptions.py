"""
Base exception classes for application-wide error handling.

Every failure a service can report to a caller is one of the classes below.
Services raise them; the DRF exception handler in core.exception_handler turns
them into the JSON error body and HTTP status. Views never build error
responses by hand.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError       - 400, malformed input or violated precondition
    ├── NotAuthorizedError    - 403, requester may not perform the operation
    ├── NotFoundError         - 404, referenced entity absent (or hidden)
    ├── ConflictError         - 409, uniqueness or state conflict
    └── UpstreamServiceError  - 502, media store / mail service failure

Anything else escaping a view is reported as 500 INTERNAL_ERROR.

Usage:
    from core.exceptions import ConflictError, NotFoundError

    raise NotFoundError("Conversation not found", error_code="CONVERSATION_NOT_FOUND")

    raise ConflictError(
        "Username is already taken",
        error_code="USERNAME_TAKEN",
        details={"username": username},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, metadata, etc.)
        status_code: HTTP status the REST surface answers with
    """

    default_error_code: str = "APPLICATION_ERROR"
    status_code: int = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to the API error body.

        Example:
            {
                "message": "Conversation not found",
                "error_code": "CONVERSATION_NOT_FOUND",
                "details": {"conversation_id": 12}
            }
        """
        result: dict[str, Any] = {
            "message": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for missing required fields, malformed values and violated
    preconditions (a group with too few members, an empty message).
    """

    default_error_code: str = "VALIDATION_ERROR"
    status_code: int = 400


class NotAuthorizedError(BaseApplicationError):
    """
    Raised when the requester may not perform the operation.

    Example:
        if conversation.group_admin_id != requester.id:
            raise NotAuthorizedError(
                "Only the group admin can add participants",
                error_code="ADMIN_REQUIRED",
            )
    """

    default_error_code: str = "NOT_AUTHORIZED"
    status_code: int = 403


class NotFoundError(BaseApplicationError):
    """
    Raised when a referenced entity does not exist.

    Also used where existence and authorization are intentionally blended,
    e.g. deleting a message the requester did not send.
    """

    default_error_code: str = "NOT_FOUND"
    status_code: int = 404


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current state.

    Use for:
    - Duplicate entries (email, username, friend request)
    - Adding a user that is already a participant
    - Removing the group admin
    """

    default_error_code: str = "CONFLICT"
    status_code: int = 409


class UpstreamServiceError(BaseApplicationError):
    """
    Raised when an upstream service (media store, mail) fails.

    The mutation that needed the upstream result is aborted before any
    write. Log the original error; don't expose it to clients.
    """

    default_error_code: str = "UPSTREAM_FAILURE"
    status_code: int = 502
