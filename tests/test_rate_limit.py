import pytest
from fastapi.testclient import TestClient

from main import create_app
from minibook.core.limiter import limiter


@pytest.fixture(autouse=True)
def clear_limits():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def limited_app(settings, tmp_path):
    return create_app(
        settings.model_copy(
            update={
                "rate_limit_enabled": True,
                "upload_dir": str(tmp_path / "limited-uploads"),
            }
        )
    )


def test_health_is_rate_limited(limited_app):
    with TestClient(limited_app) as client:
        for _ in range(10):
            assert client.get("/health").status_code == 200

        response = client.get("/health")

    assert response.status_code == 429
    assert response.json()["error"] == "Too many requests"


def test_disabled_app_does_not_switch_off_other_apps(limited_app, app):
    # Built after ``limited_app``, with rate limiting off
    with TestClient(app) as unlimited, TestClient(limited_app) as limited:
        for _ in range(15):
            assert unlimited.get("/health").status_code == 200

        for _ in range(10):
            assert limited.get("/health").status_code == 200
        assert limited.get("/health").status_code == 429

        assert unlimited.get("/health").status_code == 200


def test_login_limit_applies_when_enabled(limited_app):
    with TestClient(limited_app) as client:
        statuses = [
            client.post(
                "/api/login", json={"username": "nobody", "password": "wrong"}
            ).status_code
            for _ in range(21)
        ]

    assert statuses[:20] == [401] * 20
    assert statuses[20] == 429
