"""
Test configuration and fixtures for chat tests.

This module provides:
- Seller, buyer and outsider users around one listing
- A room between the seller and the buyer
- API clients authenticated with JWT access tokens
- A fresh in-memory channel layer and subscription registry per test
- RedisDownLayer, a channel layer whose Redis cannot be reached

Usage:
    def test_example(room, buyer_client):
        response = buyer_client.get(f"/api/v1/chat/rooms/{room.room_id}/")
        assert response.status_code == 200
"""

from decimal import Decimal

import pytest
import redis.exceptions
from channels.layers import channel_layers
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from authentication.tests.factories import ProfileFactory, UserFactory
from chat import registry as registry_module
from chat import router as router_module
from chat.registry import SubscriptionRegistry
from chat.services import RoomService
from listings.tests.factories import ListingFactory


# =============================================================================
# Channel Layer Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def fresh_channel_layer(monkeypatch):
    """
    Give every test an empty in-memory channel layer and no process
    registry or router left over from a previous test.
    """
    channel_layers.backends.clear()
    monkeypatch.setattr(registry_module, "_default_registry", None)
    monkeypatch.setattr(router_module, "_default_router", None)
    yield
    channel_layers.backends.clear()


@pytest.fixture
def registry():
    """A registry bound to the default (in-memory) channel layer."""
    return SubscriptionRegistry()


class RedisDownLayer:
    """Channel layer whose Redis server cannot be reached."""

    async def group_add(self, group, channel):
        raise redis.exceptions.ConnectionError("Error 111 connecting to redis:6379")

    group_discard = group_add

    async def group_send(self, group, message):
        raise redis.exceptions.ConnectionError("Error 111 connecting to redis:6379")


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def seller(db):
    """Listing owner with a display username."""
    return ProfileFactory(username="seller_sam").user


@pytest.fixture
def buyer(db):
    """User asking about the listing."""
    return ProfileFactory(username="buyer_bea").user


@pytest.fixture
def outsider(db):
    """User who is neither seller nor buyer of any test room."""
    return UserFactory()


# =============================================================================
# Listing and Room Fixtures
# =============================================================================


@pytest.fixture
def listing(seller):
    """A listing owned by the seller."""
    return ListingFactory(owner=seller, title="Road bike", price=Decimal("250.00"))


@pytest.fixture
def room(listing, buyer):
    """The room between the seller and the buyer about the listing."""
    return RoomService.get_or_create_room(listing.id, buyer.id).data


# =============================================================================
# API Client Fixtures
# =============================================================================


def access_token(user) -> str:
    """Raw access token string for a user."""
    return str(AccessToken.for_user(user))


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def authenticated_client_factory():
    """
    Factory for API clients authenticated as a given user.

    Usage:
        client = authenticated_client_factory(user)
    """

    def _client(user):
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {access_token(user)}")
        return client

    return _client


@pytest.fixture
def seller_client(seller, authenticated_client_factory):
    return authenticated_client_factory(seller)


@pytest.fixture
def buyer_client(buyer, authenticated_client_factory):
    return authenticated_client_factory(buyer)


@pytest.fixture
def outsider_client(outsider, authenticated_client_factory):
    return authenticated_client_factory(outsider)
