"""
Constants and configuration for the chat module.

This module centralizes configuration values for:
- Message content limits
- Group conversation rules
- Live connection (presence) behaviour

Import example:
    from chat.constants import MESSAGE_CONFIG, GROUP_CONFIG
"""

from typing import Final


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    MAX_TEXT_LENGTH: Final[int] = 10000  # Characters
    DELETED_PLACEHOLDER: Final[str] = "This message was deleted"


# =============================================================================
# Group Configuration
# =============================================================================


class GROUP_CONFIG:
    """Configuration for group conversations."""

    # Others besides the creator, so a group starts with at least 3 members
    MIN_OTHER_PARTICIPANTS: Final[int] = 2
    MAX_NAME_LENGTH: Final[int] = 100


# =============================================================================
# Presence Configuration
# =============================================================================


class PRESENCE_CONFIG:
    """Configuration for live connections."""

    # Websocket close code for connections without a valid token
    UNAUTHENTICATED_CLOSE_CODE: Final[int] = 4001

    # Query string parameter carrying the JWT for non-browser clients
    TOKEN_QUERY_PARAM: Final[str] = "token"
