"""
Tests for toolkit app.

This package contains test modules for:
- test_email_service.py: EmailService tests
- test_media_store.py: MediaStore tests

Usage:
    pytest toolkit/tests/
"""
