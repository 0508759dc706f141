"""
Email service for centralized email sending.

This module provides the EmailService class for sending emails with
Django template rendering for HTML and plain text bodies.

Configuration:
    Email settings are read from Django settings:
    - EMAIL_BACKEND
    - EMAIL_HOST, EMAIL_PORT, EMAIL_USE_TLS
    - DEFAULT_FROM_EMAIL

Usage:
    from toolkit.services.email import EmailService

    EmailService.send(
        to="user@example.com",
        subject="Reset your password",
        template_name="authentication/password_reset_email",
        context={"reset_url": url},
    )

Note:
    Call this from a Celery task, never inline in a request. Failures are
    raised as UpstreamServiceError so the task can retry.
"""

from __future__ import annotations

import logging
import smtplib

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

from core.exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)


class EmailService:
    """
    Centralized email sending with template support.

    Templates come in pairs: {template_name}.txt for the plain body and
    {template_name}.html for the HTML alternative.
    """

    @staticmethod
    def send(
        to: str | list[str],
        subject: str,
        template_name: str,
        context: dict,
        from_email: str | None = None,
    ) -> bool:
        """
        Render the template pair and send one message.

        Args:
            to: Recipient email address(es)
            subject: Email subject line
            template_name: Template path without extension
            context: Template context variables
            from_email: Sender email (defaults to DEFAULT_FROM_EMAIL)

        Returns:
            True if the backend accepted the message

        Raises:
            UpstreamServiceError: If the mail backend fails
        """
        recipients = [to] if isinstance(to, str) else list(to)

        body_text = render_to_string(f"{template_name}.txt", context)
        body_html = render_to_string(f"{template_name}.html", context)

        message = EmailMultiAlternatives(
            subject=subject,
            body=body_text,
            from_email=from_email or settings.DEFAULT_FROM_EMAIL,
            to=recipients,
        )
        message.attach_alternative(body_html, "text/html")

        try:
            sent = message.send(fail_silently=False)
        except (smtplib.SMTPException, OSError) as e:
            logger.exception(f"Failed to send '{subject}' to {recipients}")
            raise UpstreamServiceError(
                "Mail service unavailable",
                error_code="MAIL_SEND_FAILED",
                details={"service": "mail", "original_error": str(e)},
            ) from e

        logger.info(f"Sent '{subject}' to {len(recipients)} recipient(s)")
        return sent > 0
