"""
Service classes for toolkit app.

This package contains adapters for the upstream services the chat backend
depends on:
- EmailService: Email sending with template support
- MediaStore: Base64 image upload to the configured storage

Usage:
    from toolkit.services import EmailService, MediaStore
"""

from toolkit.services.email import EmailService
from toolkit.services.media import MediaStore

__all__ = ["EmailService", "MediaStore"]
