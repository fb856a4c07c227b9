import io
import os
import tempfile

import pytest

# Configure the environment before the application module is imported:
# ``main`` builds a default app at import time.
_IMPORT_DIR = tempfile.mkdtemp(prefix="minibook-tests-")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", os.path.join(_IMPORT_DIR, "uploads"))
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from fastapi.testclient import TestClient  # noqa: E402
from PIL import Image  # noqa: E402

from main import create_app  # noqa: E402
from minibook.core.config import Settings  # noqa: E402
from minibook.core.database import Database  # noqa: E402

TEST_SECRET = "test-secret-key"
PASSWORD = "secret123"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        upload_dir=str(tmp_path / "uploads"),
        log_file="",
        rate_limit_enabled=False,
        password_hash_rounds=4,
        jwt_secret=TEST_SECRET,
        jwt_previous_secrets=[],
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def database(settings):
    db = Database(settings.sqlalchemy_database_url)
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def upload_dir(settings):
    return settings.upload_dir


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------
def create_test_image(fmt: str = "PNG", color: str = "red") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=color).save(buffer, format=fmt)
    return buffer.getvalue()


def register_user(client, username: str, password: str = PASSWORD, **extra):
    payload = {
        "username": username,
        "email": extra.pop("email", f"{username}@example.com"),
        "password": password,
        "full_name": extra.pop("full_name", username.title()),
    }
    response = client.post("/api/register", json=payload)
    assert response.status_code == 200, response.text
    body = response.json()
    return body["token"], body["user"]


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def create_post(client, token: str, content: str = "", files=None):
    return client.post(
        "/api/posts",
        data={"content": content},
        files=files,
        headers=auth_headers(token),
    )


def stored_files(upload_dir) -> list:
    found = []
    for folder in ("images", "videos"):
        path = os.path.join(upload_dir, folder)
        if os.path.isdir(path):
            found.extend(os.listdir(path))
    return found
