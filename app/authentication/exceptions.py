"""
Authentication-specific exceptions.

InvalidCredentialsError extends the shared ValidationError so the REST layer
answers 400, and adds the reset hint the login form uses to offer
"Forgot password?" after repeated failures.
"""

from __future__ import annotations

from typing import Any

from core.exceptions import ValidationError


class InvalidCredentialsError(ValidationError):
    """
    Raised when the login id or password is wrong.

    When show_reset is set the body carries {"show_reset": true,
    "email": <account email>} next to message and error_code.
    """

    default_error_code: str = "INVALID_CREDENTIALS"

    def __init__(self, message: str = "Invalid credentials", show_reset: bool = False, email: str = ""):
        super().__init__(message)
        self.show_reset = show_reset
        self.email = email

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.show_reset:
            result["show_reset"] = True
            result["email"] = self.email
        return result
