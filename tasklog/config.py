"""Tasklog configuration management."""
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Tasklog configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="TASKLOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # General
    env: Environment = Environment.DEVELOPMENT
    log_level: str = "INFO"
    debug: bool = False

    # Database - SQLite locally, PostgreSQL in production
    database_url: str = "sqlite+aiosqlite:///./tasklog.db"

    # Static admin credential checked by the Basic auth verifier
    admin_username: str = "admin"
    admin_password: Optional[str] = None

    # Pagination
    default_page_limit: int = Field(default=5, description="Page size when none is given")
    max_page_limit: int = Field(default=100, description="Largest accepted page size")

    # CORS - browser clients from any origin
    cors_allowed_origins: list[str] = Field(default=["*"])
    cors_allowed_headers: list[str] = Field(
        default=["authorization", "x-client-info", "apikey", "content-type"]
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("database_url")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Render/Heroku hand out postgres:// URLs; the async engine needs the asyncpg driver."""
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql+asyncpg://", 1)
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 1 <= v <= 65535:
            raise ValueError(f"Port must be between 1 and 65535, got {v}")
        return v

    @model_validator(mode="after")
    def validate_page_limits(self) -> "Settings":
        if self.default_page_limit < 1:
            raise ValueError("default_page_limit must be at least 1")
        if self.default_page_limit > self.max_page_limit:
            raise ValueError("default_page_limit must not exceed max_page_limit")
        return self


settings = Settings()
