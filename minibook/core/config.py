from typing import Annotated, List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    # Application Information
    app_name: str = Field(default="MiniBook")
    app_description: str = Field(default="Minimal social network API")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)
    production: bool = Field(default=False)
    api_prefix: str = Field(default="/api")

    # Database Configuration
    # A full URL wins over the individual parts below.
    database_url: Optional[str] = Field(default=None)
    db_connection: str = Field(default="postgresql")
    db_host: str = Field(default="127.0.0.1")
    db_port: int = Field(default=5432)
    db_database: str = Field(default="minibook")
    db_username: str = Field(default="postgres")
    db_password: str = Field(default="postgres")
    db_pool_size: int = Field(default=5)
    db_max_overflow: int = Field(default=10)
    db_echo: bool = Field(default=False)

    # Security Settings
    cors_allowed_origins: Annotated[List[str], NoDecode] = Field(
        default=["http://localhost:5173"]
    )
    password_hash_rounds: int = Field(default=10)

    # JWT Configuration
    jwt_secret: str = Field(default="change-me-in-production")
    jwt_previous_secrets: Annotated[List[str], NoDecode] = Field(default=[])
    jwt_algorithm: str = Field(default="HS256")
    jwt_expiration_hours: int = Field(default=24)
    jwt_issuer: str = Field(default="MiniBook")

    # Media Uploads
    upload_dir: str = Field(default="uploads")
    media_url_prefix: str = Field(default="/uploads")
    max_upload_size_mb: int = Field(default=50)
    max_media_per_post: int = Field(default=10)

    # Feed
    feed_limit: int = Field(default=50)

    # Rate Limiting
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_storage_uri: str = Field(default="memory://")
    auth_rate_limit: str = Field(default="20/minute")
    health_rate_limit: str = Field(default="10/minute")

    # Logging
    log_level: str = Field(default="info")
    log_file: str = Field(default="logs/app.log")

    # ============================
    # Generic comma-separated parser
    # ============================
    @staticmethod
    def _parse_csv(value, default):
        if isinstance(value, str):
            items = [x.strip() for x in value.split(",") if x.strip()]
            return items if items else default
        if isinstance(value, (list, tuple)):
            return list(value)
        return default

    @field_validator("cors_allowed_origins", mode="before")
    def validate_cors(cls, v):
        return cls._parse_csv(v, ["http://localhost:5173"])

    @field_validator("jwt_previous_secrets", mode="before")
    def validate_previous_secrets(cls, v):
        return cls._parse_csv(v, [])

    @property
    def sqlalchemy_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return "{driver}+psycopg2://{user}:{password}@{host}:{port}/{database}".format(
            driver=self.db_connection,
            user=self.db_username,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_database,
        )

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "frozen": True,
    }


def load_settings(**overrides) -> Settings:
    try:
        return Settings(**overrides)
    except ValidationError as e:
        print("Invalid configuration:", e)
        raise


settings = load_settings()
