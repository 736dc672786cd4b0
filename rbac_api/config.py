"""Application configuration settings."""
from __future__ import annotations

import os
from functools import lru_cache

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Runtime toggles -----------------------------------------------------
# Execution environment: "dev" | "test" | "staging" | "prod"
ENV = os.getenv("APP_ENV", "dev").lower()

IN_MEMORY_DATABASE_URL = "sqlite+pysqlite:///:memory:"


class Settings(BaseSettings):
    """Environment configuration for the RBAC integration API."""

    app_env: str = ENV
    database_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "CONNECTION_STRING"),
    )
    ALLOW_DB_CREATE_ALL: bool = True
    CORS_ALLOW_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: str | None = None
    PROMETHEUS_ENABLED: bool = False

    # --- Paging -----------------------------------------------------------
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100
    AUDIT_DEFAULT_PAGE_SIZE: int = 50
    AUDIT_MAX_PAGE_SIZE: int = 1000

    # No authentication layer: audit fields fall back to this actor.
    DEFAULT_ACTOR: str = "system"

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("database_url")
    @classmethod
    def _strip_empty_url(cls, value: str | None) -> str | None:
        """Normalise empty connection strings to ``None`` so the in-memory fallback applies."""

        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    @property
    def effective_database_url(self) -> str:
        return self.database_url or IN_MEMORY_DATABASE_URL

    @property
    def uses_in_memory_database(self) -> bool:
        return self.database_url is None


class AppInfo(BaseModel):
    name: str = "rbac-eav-api"
    version: str = "0.1.0"


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()


__all__ = [
    "ENV",
    "IN_MEMORY_DATABASE_URL",
    "Settings",
    "AppInfo",
    "get_settings",
]
