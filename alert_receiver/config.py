"""Application configuration settings."""
from __future__ import annotations

import os
from functools import lru_cache

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Runtime toggles -----------------------------------------------------
# Execution environment: "dev" | "test" | "staging" | "prod"
ENV = os.getenv("ALERT_RECEIVER_ENV", "dev").lower()

PLUGIN_NAME = "discourse-prometheus-alert-receiver"


class Settings(BaseSettings):
    """Environment configuration for the alert receiver."""

    app_env: str = ENV
    database_url: str = "sqlite:///alert_receiver.db"
    database_echo: bool = False
    base_url: str = "http://localhost:8000"
    log_level: str = "INFO"

    admin_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ADMIN_API_KEY", "API_KEY"),
    )

    # --- Alert receiver behaviour ---------------------------------------
    PROMETHEUS_ALERT_RECEIVER_ENABLE_ASSIGN: bool = True
    PROMETHEUS_ALERT_RECEIVER_DEBUG_ENABLED: bool = False
    PROMETHEUS_ALERT_RECEIVER_OPSGENIE_API_KEY: str | None = None
    OPSGENIE_API_URL: str = "https://api.eu.opsgenie.com/v2"
    OPSGENIE_TIMEOUT_SECONDS: int = 10
    OPSGENIE_CACHE_TTL_SECONDS: int = 86400

    # --- Background jobs --------------------------------------------------
    SCHEDULER_ENABLED: bool = False
    JOBS_RUN_IMMEDIATELY: bool = False
    ALLOW_DB_CREATE_ALL: bool = False

    SENTRY_DSN: str | None = None
    PROMETHEUS_ENABLED: bool = True

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="", env_file_encoding="utf-8", populate_by_name=True
    )

    @field_validator("admin_api_key", "PROMETHEUS_ALERT_RECEIVER_OPSGENIE_API_KEY")
    @classmethod
    def _strip_empty_secret(cls, value: str | None) -> str | None:
        """Normalise empty secrets to ``None`` for easier validation."""

        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class AppInfo(BaseModel):
    name: str = "prometheus-alert-receiver"
    version: str = "0.1.0"


settings = Settings()


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return settings


__all__ = [
    "ENV",
    "PLUGIN_NAME",
    "Settings",
    "AppInfo",
    "settings",
    "get_settings",
]
