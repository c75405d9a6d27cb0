"""Tests for the health check endpoint."""

from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient


@pytest.fixture
def app():
    """
    Create a minimal FastAPI app with only the health endpoint.

    Returns:
        FastAPI: FastAPI application instance.
    """
    from relay.api.http.health import router

    test_app = FastAPI()
    test_app.include_router(router)
    return test_app


@pytest.fixture
def client(app):
    """
    Create a test client for the FastAPI application.

    Args:
        app: FastAPI application fixture.

    Returns:
        TestClient: FastAPI test client instance.
    """
    return TestClient(app)


def make_relay_server(serving: bool, connections: int) -> MagicMock:
    """Builds a stand-in for RelayServer with a sized registry."""
    relay_server = MagicMock()
    relay_server.is_serving = serving
    relay_server.registry.__len__.return_value = connections
    return relay_server


def test_health_endpoint_listener_serving(app, client):
    """Test health endpoint while the relay listener is serving."""
    app.state.relay_server = make_relay_server(serving=True, connections=3)

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "listener": "serving",
        "active_connections": 3,
    }


def test_health_endpoint_listener_stopped(app, client):
    """Test health endpoint returns 503 once the listener stopped."""
    app.state.relay_server = make_relay_server(serving=False, connections=0)

    response = client.get("/health")

    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "unhealthy"
    assert data["listener"] == "stopped"


def test_health_endpoint_without_listener(client):
    """Test health endpoint before any listener was attached."""
    response = client.get("/health")

    assert response.status_code == 503
    assert response.json() == {
        "status": "unhealthy",
        "listener": "stopped",
        "active_connections": 0,
    }
