"""
Tests for the health check endpoint.
"""

from unittest.mock import patch

import pytest
from django.db import DatabaseError


@pytest.mark.django_db
class TestHealthCheck:
    """
    Verifies: /health/ reports database and cache status.
    """

    def test_healthy(self, client):
        response = client.get("/health/")

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "database": "connected",
            "cache": "connected",
        }

    def test_database_down_is_unhealthy(self, client):
        """
        A database failure answers 503.

        Why it matters: Load balancers stop routing to a process that
        cannot persist messages.
        """
        with patch("core.views.connection.cursor", side_effect=DatabaseError("down")):
            response = client.get("/health/")

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"
        assert response.json()["status"] == "unhealthy"

    def test_plain_http_is_served(self, client, settings):
        """
        Why it matters: the HTTPS redirect belongs to deployments behind
        a TLS proxy; under the test client every endpoint would answer 301.
        """
        response = client.get("/health/", secure=False)

        assert settings.SECURE_SSL_REDIRECT is False
        assert response.status_code == 200
