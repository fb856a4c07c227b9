import pytest
from pydantic import ValidationError

from minibook.core.config import Settings


def test_csv_lists_from_environment(monkeypatch):
    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "http://a.test, http://b.test")
    monkeypatch.setenv("JWT_PREVIOUS_SECRETS", "old-one,old-two")

    settings = Settings()

    assert settings.cors_allowed_origins == ["http://a.test", "http://b.test"]
    assert settings.jwt_previous_secrets == ["old-one", "old-two"]


def test_database_url_built_from_parts():
    settings = Settings(
        database_url=None,
        db_host="db.internal",
        db_port=5433,
        db_database="social",
        db_username="app",
        db_password="pw",
    )
    assert (
        settings.sqlalchemy_database_url
        == "postgresql+psycopg2://app:pw@db.internal:5433/social"
    )


def test_explicit_database_url_wins():
    settings = Settings(database_url="sqlite:///./local.db")
    assert settings.sqlalchemy_database_url == "sqlite:///./local.db"


def test_defaults():
    settings = Settings(_env_file=None)
    assert settings.jwt_expiration_hours == 24
    assert settings.max_upload_size_bytes == 50 * 1024 * 1024
    assert settings.max_media_per_post == 10
    assert settings.feed_limit == 50
    assert settings.auth_rate_limit == "20/minute"
    assert settings.health_rate_limit == "10/minute"


def test_settings_are_frozen():
    settings = Settings()
    with pytest.raises(ValidationError):
        settings.feed_limit = 5
