"""
Celery tasks for authentication.

This module defines async tasks for:
- Sending password reset emails

Related files:
    - services.py: AuthService.forgot_password queues the task
    - toolkit/services/email.py: EmailService does the sending

Usage:
    from authentication.tasks import send_password_reset_email
    send_password_reset_email.delay("ada@example.com", reset_url)
"""

import logging

from celery import shared_task

from authentication.constants import AUTH_CONFIG
from core.exceptions import UpstreamServiceError
from toolkit.services.email import EmailService

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(UpstreamServiceError,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
)
def send_password_reset_email(self, email: str, reset_url: str) -> bool:
    """
    Send the password reset link.

    Args:
        email: Recipient address
        reset_url: Frontend URL embedding the plaintext reset token

    Returns:
        True if the email was sent successfully
    """
    sent = EmailService.send(
        to=email,
        subject="Connectify - Reset your password",
        template_name="authentication/password_reset_email",
        context={
            "reset_url": reset_url,
            "expires_in_minutes": AUTH_CONFIG.RESET_TOKEN_LIFETIME_SECONDS // 60,
        },
    )
    logger.info(f"Password reset email sent (attempt {self.request.retries + 1})")
    return sent
