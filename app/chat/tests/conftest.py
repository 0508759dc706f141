"""
Test configuration and fixtures for chat tests.

This module provides:
- Four users (ada, bob, carol, dave)
- A direct conversation between ada and bob
- A group administered by ada with bob and carol
- API clients authenticated as any user

Usage:
    def test_example(ada, group, client_for):
        response = client_for(ada).get('/api/v1/conversations/')
        assert response.status_code == 200
"""

import base64
import io

import pytest
from PIL import Image
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from authentication.tests.factories import UserFactory
from chat.tests.factories import DirectConversationFactory, GroupConversationFactory


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def ada(db):
    return UserFactory(username="ada", full_name="Ada Lovelace")


@pytest.fixture
def bob(db):
    return UserFactory(username="bob", full_name="Bob Stone")


@pytest.fixture
def carol(db):
    return UserFactory(username="carol", full_name="Carol Reed")


@pytest.fixture
def dave(db):
    """Not a member of any fixture conversation."""
    return UserFactory(username="dave", full_name="Dave North")


# =============================================================================
# Conversation Fixtures
# =============================================================================


@pytest.fixture
def direct(ada, bob):
    return DirectConversationFactory(user1=ada, user2=bob)


@pytest.fixture
def group(ada, bob, carol):
    return GroupConversationFactory(
        group_name="Weekend", group_admin=ada, members=[bob, carol]
    )


# =============================================================================
# Media Fixtures
# =============================================================================


@pytest.fixture
def png_data_url():
    """A 2x2 PNG as a base64 data URL."""
    buffer = io.BytesIO()
    Image.new("RGB", (2, 2), color="blue").save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode()
    return f"data:image/png;base64,{encoded}"


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client for public endpoints."""
    return APIClient()


@pytest.fixture
def client_for(db):
    """
    Factory to create authenticated clients for any user.

    Usage:
        def test_example(client_for, ada):
            response = client_for(ada).get('/api/v1/conversations/')
    """

    def _make_client(user):
        client = APIClient()
        client.credentials(
            HTTP_AUTHORIZATION=f"Bearer {AccessToken.for_user(user)}"
        )
        return client

    return _make_client
