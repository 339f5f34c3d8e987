"""Tests for health check endpoints."""


def test_health_check(client):
    """Test /healthz endpoint."""
    response = client.get("/healthz")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"


def test_readiness_check(client):
    """Test /readyz endpoint after the session bootstrap has finished."""
    response = client.get("/readyz")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["checks"] == {
        "blog_api_url": True,
        "auth_provider_url": True,
        "session_bootstrapped": True,
    }


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["docs"] == "/docs"
