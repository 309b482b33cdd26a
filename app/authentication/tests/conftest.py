"""
Test configuration and fixtures for authentication tests.

This module provides:
- User fixtures (active, inactive)
- Access token helpers for identity verification tests

Usage:
    def test_example(user, access_token_for):
        result = IdentityProvider.verify(access_token_for(user))
        assert result.success
"""

import pytest
from rest_framework_simplejwt.tokens import AccessToken

from authentication.tests.factories import UserFactory


@pytest.fixture
def user(db):
    """Create an active user with auto-created profile."""
    return UserFactory()


@pytest.fixture
def inactive_user(db):
    """Create a deactivated user whose tokens must no longer verify."""
    return UserFactory(is_active=False)


@pytest.fixture
def access_token_for():
    """
    Factory fixture returning a raw access token string for a user.

    Usage:
        token = access_token_for(user)
    """

    def _token(user):
        return str(AccessToken.for_user(user))

    return _token
