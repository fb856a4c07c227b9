from fastapi.testclient import TestClient


def test_unmatched_route(client):
    response = client.get("/api/nope")

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "error": "Route not found",
        "path": "/api/nope",
        "method": "GET",
    }


def test_wrong_method_reported_as_unmatched_route(client):
    response = client.delete("/api/register")

    assert response.status_code == 404
    assert response.json()["method"] == "DELETE"


def test_unexpected_error_does_not_leak_details(app):
    def explode():
        raise RuntimeError("connection string postgres://admin:hunter2@db")

    app.add_api_route("/explode", explode)

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/explode")

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Internal server error",
        "message": "An unexpected error occurred",
    }
    assert "hunter2" not in response.text


def test_health_and_root(client):
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["database"] == "healthy"

    root = client.get("/")
    assert root.status_code == 200
    assert root.json()["app_name"] == "MiniBook"


def test_request_id_header(client):
    response = client.get("/", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"
    assert "X-Process-Time" in response.headers
