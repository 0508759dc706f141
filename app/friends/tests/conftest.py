"""
Test configuration and fixtures for friends tests.

Usage:
    def test_example(ada, bob, client_for):
        response = client_for(ada).get('/api/v1/users/friends/')
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from authentication.tests.factories import UserFactory


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
def client_for(db):
    """API client authenticated as the given user."""

    def _make_client(user):
        client = APIClient()
        client.credentials(
            HTTP_AUTHORIZATION=f"Bearer {AccessToken.for_user(user)}"
        )
        return client

    return _make_client
