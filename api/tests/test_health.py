"""Tests for health endpoints."""

from fastapi.testclient import TestClient


def test_liveness(client: TestClient) -> None:
    """Test the liveness endpoint."""
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_readiness_without_database(client: TestClient) -> None:
    """Without lifespan startup no backing store is connected."""
    response = client.get("/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["cassandra"] is False
    assert data["redis"] is False
    assert "environment" in data
    assert "debug" in data


def test_health(client: TestClient) -> None:
    """Test the general health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["app_name"] == "whiteboard"
    assert "version" in data
    assert "environment" in data


def test_root(client: TestClient) -> None:
    """Test the root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "Whiteboard" in data["message"]
    assert "version" in data


def test_request_id_header(client: TestClient) -> None:
    response = client.get("/health/live")
    assert "X-Request-ID" in response.headers


def test_error_responses_render_with_orjson(client: TestClient) -> None:
    from fastapi.responses import ORJSONResponse

    assert client.app.router.default_response_class is ORJSONResponse
    response = client.get("/does-not-exist")
    assert response.status_code == 404
    assert response.json()["status_code"] == 404
