"""
Root pytest configuration for the Django project.

This module configures pytest-django and provides project-wide fixtures.
App-specific fixtures are defined in each app's tests/conftest.py.
"""

import pytest


def pytest_configure():
    """Override settings that need a running Redis, SMTP server or broker."""
    from django.conf import settings

    # Disable throttling during tests to prevent rate limit failures
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}

    # Use fast password hasher for tests (PBKDF2 is too slow with 870K iterations)
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]

    settings.CHANNEL_LAYERS = {
        "default": {"BACKEND": "channels.layers.InMemoryChannelLayer"},
    }
    settings.CACHES = {
        "default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"},
    }
    settings.EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
    settings.CELERY_TASK_ALWAYS_EAGER = True
    # The test client speaks plain http; don't redirect it to https
    settings.SECURE_SSL_REDIRECT = False
    settings.CELERY_TASK_EAGER_PROPAGATES = True
    settings.STORAGES = {
        "default": {"BACKEND": "django.core.files.storage.InMemoryStorage"},
        "staticfiles": {
            "BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"
        },
    }


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_consumers.py → e2e (websocket round trips)
    - test_views.py, test_services.py, test_tasks.py → integration
    - test_models.py, test_serializers.py, test_sync.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_consumers.py"]

    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_tasks.py",
        "test_delivery.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_serializers.py",
        "test_presence.py",
        "test_events.py",
        "test_sync.py",
        "test_exception_handler.py",
    ]

    for item in items:
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def clear_presence():
    """Each test starts with nobody online."""
    from chat.delivery import get_registry

    get_registry().clear()
    yield
    get_registry().clear()


class RecordingChannelLayer:
    """
    Channel layer stand-in that keeps every message sent through it.

    connect() registers a user in the presence registry under a fixed
    handle, so events routed to that user land in sent.
    """

    def __init__(self):
        self.sent = []

    async def send(self, channel, message):
        self.sent.append((channel, message))

    @staticmethod
    def handle_for(user):
        return f"test.handle.{user.pk}"

    def connect(self, *users):
        from chat.delivery import get_registry

        for user in users:
            get_registry().connect(user.pk, self.handle_for(user))

    def events_for(self, user, kind=None):
        from chat.events import Event

        events = [
            Event.from_channel_message(message)
            for channel, message in self.sent
            if channel == self.handle_for(user)
        ]
        if kind is not None:
            events = [event for event in events if event.kind == kind]
        return events


@pytest.fixture
def channel_layer(monkeypatch):
    """Record what the delivery router sends instead of using a real layer."""
    from chat.delivery import get_router

    layer = RecordingChannelLayer()
    monkeypatch.setattr(get_router(), "_channel_layer", layer)
    return layer
