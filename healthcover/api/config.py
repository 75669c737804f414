"""
API Configuration
Environment-driven settings for the HealthCover service
Source: https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

import json
from functools import lru_cache
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_list(value: Any) -> Any:
    """Read a list setting given as a JSON array or as comma-separated text."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    if text.startswith("["):
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            decoded = None
        if isinstance(decoded, list):
            return decoded
    return [part.strip() for part in text.split(",") if part.strip()]


class Settings(BaseSettings):
    """
    Service settings.

    Values come from the environment, then from `.env` when present.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ============================================================================
    # Runtime
    # ============================================================================
    ENVIRONMENT: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Deployment environment"
    )
    DEBUG: bool = Field(default=False, description="Echo SQL and expose debug output")
    LOG_LEVEL: str = Field(default="INFO", description="Minimum log level")
    LOG_FILE: str | None = Field(default=None, description="Also write logs to this file")

    # ============================================================================
    # Store
    # ============================================================================
    DATABASE_URL: str | None = Field(
        default=None, description="SQLAlchemy URL; built from the POSTGRES_* values when unset"
    )
    POSTGRES_HOST: str = Field(default="db")
    POSTGRES_PORT: int = Field(default=5432)
    POSTGRES_DB: str = Field(default="healthcover")
    POSTGRES_USER: str = Field(default="healthcover")
    POSTGRES_PASSWORD: str = Field(default="")

    DB_POOL_SIZE: int = Field(default=20, ge=1, description="Pooled connections (PostgreSQL only)")
    DB_MAX_OVERFLOW: int = Field(default=10, ge=0)
    DB_POOL_TIMEOUT: int = Field(default=30, ge=1, description="Seconds to wait for a connection")
    DB_CREATE_ALL: bool = Field(
        default=False, description="Create missing tables at startup (development and tests)"
    )

    # ============================================================================
    # HTTP
    # ============================================================================
    API_HOST: str = Field(default="0.0.0.0", description="Bind address")  # nosec B104
    API_PORT: int = Field(default=8000, description="Bind port")

    CORS_ORIGINS: list[str] = Field(default=["http://localhost:5173", "http://localhost:3000"])
    CORS_CREDENTIALS: bool = Field(default=True)
    CORS_METHODS: list[str] = Field(default=["*"])
    CORS_HEADERS: list[str] = Field(default=["*"])

    WS_MAX_VIEWS_PER_CONNECTION: int = Field(
        default=8, ge=1, description="Live views one WebSocket connection may mount"
    )

    @field_validator("CORS_ORIGINS", "CORS_METHODS", "CORS_HEADERS", mode="before")
    @classmethod
    def split_cors_lists(cls, v: Any) -> Any:
        return _split_list(v)

    # ============================================================================
    # Derived Values
    # ============================================================================
    @property
    def database_url(self) -> str:
        """Explicit DATABASE_URL, else the asyncpg URL of the POSTGRES_* values"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def is_sqlite(self) -> bool:
        """SQLite URLs cannot take pool sizing parameters"""
        return self.database_url.startswith("sqlite")

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_testing(self) -> bool:
        return self.ENVIRONMENT == "testing"


@lru_cache
def get_settings() -> Settings:
    """
    Settings loaded once per process.

    Source: https://fastapi.tiangolo.com/advanced/settings/
    """
    return Settings()


settings = get_settings()
