"""
Celery configuration.

Background work in this project:
- Password reset emails (authentication.tasks)
- Periodic friendship reconciliation (friends.tasks, scheduled by
  CELERY_BEAT_SCHEDULE and run by celery beat)

Redis is both the message broker and the result backend. Tasks are
auto-discovered from all installed Django apps.

Run:
    celery -A config worker -l info
    celery -A config beat -l info
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("connectify")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
