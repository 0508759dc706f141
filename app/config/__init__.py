# =============================================================================
# Django Project Configuration Package
# =============================================================================
# Settings, URLs, the ASGI/WSGI entry points and the Celery app.
#
# The Celery app is imported here so shared tasks (password reset mail,
# friendship reconciliation) bind to it when Django starts.
# =============================================================================

from config.celery import app as celery_app

__all__ = ("celery_app",)
