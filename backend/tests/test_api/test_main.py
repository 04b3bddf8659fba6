"""
Tests for application-level endpoints

Author: TM3
Date: 2025-11-21
"""
from unittest.mock import MagicMock, patch


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "online"


@patch("app.main.get_db_connection_with_retry")
def test_health_connected(mock_connect, client):
    mock_connect.return_value = MagicMock()

    body = client.get("/health").json()

    assert body["status"] == "healthy"
    assert body["database"]["status"] == "connected"
    mock_connect.assert_called_once_with(max_retries=1, retry_delay=0.5)


@patch("app.main.get_db_connection_with_retry")
def test_health_disconnected(mock_connect, client):
    mock_connect.side_effect = Exception("could not connect to server")

    body = client.get("/health").json()

    assert body["status"] == "unhealthy"
    assert body["database"]["error"] == "could not connect to server"


def test_status_lists_modules(client):
    modules = client.get("/api/v1/status").json()["modules"]
    prefixes = {m["prefix"] for m in modules}
    assert "/api/v1/checkout" in prefixes
    assert "/api/v1/gift-cards" in prefixes


def test_unknown_blog_taxonomy_is_404(client):
    assert client.get("/api/v1/blog/authors").status_code == 404
