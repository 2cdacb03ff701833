from __future__ import annotations


def test_root(client) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Test Cleaning API running"}


def test_health_reports_database(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"success": True, "database": "up"}


def test_unknown_route_uses_error_envelope(client) -> None:
    response = client.get("/api/v1/nothing-here")

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_cors_preflight(client) -> None:
    response = client.options(
        "/api/v1/blogs",
        headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "POST"},
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
