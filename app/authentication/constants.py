"""
Constants and configuration for authentication.

Import example:
    from authentication.constants import AUTH_CONFIG
"""

from typing import Final


class AUTH_CONFIG:
    """Configuration for credentials, password reset and profile changes."""

    MIN_PASSWORD_LENGTH: Final[int] = 6

    # Failed logins before the error body offers a password reset
    FAILED_LOGIN_RESET_THRESHOLD: Final[int] = 3

    RESET_TOKEN_BYTES: Final[int] = 32
    RESET_TOKEN_LIFETIME_SECONDS: Final[int] = 60 * 60  # 1 hour

    USERNAME_CHANGE_COOLDOWN_DAYS: Final[int] = 7
