"""Tests for authentication Celery tasks."""

from unittest import mock

import pytest
from django.core import mail

from authentication.tasks import send_password_reset_email
from core.exceptions import UpstreamServiceError


class TestSendPasswordResetEmail:
    def test_sends_email_with_reset_link(self, db):
        result = send_password_reset_email(
            "ada@example.com", "http://localhost:5173/reset-password/abc123"
        )

        assert result is True
        assert len(mail.outbox) == 1
        message = mail.outbox[0]
        assert message.to == ["ada@example.com"]
        assert "http://localhost:5173/reset-password/abc123" in message.body
        assert message.alternatives[0][1] == "text/html"

    def test_mail_failure_surfaces_as_upstream_error(self, db):
        with mock.patch(
            "django.core.mail.EmailMultiAlternatives.send",
            side_effect=OSError("connection refused"),
        ):
            with pytest.raises(UpstreamServiceError) as exc_info:
                send_password_reset_email(
                    "ada@example.com", "http://localhost:5173/reset-password/abc123"
                )

        assert exc_info.value.error_code == "MAIL_SEND_FAILED"
