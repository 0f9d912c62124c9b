"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    tandoor_base_url: str = "http://localhost:8080"
    tandoor_username: str | None = None
    tandoor_password: str | None = None
    tandoor_auth_token: str | None = None
    request_timeout_seconds: float = 15
    auth_timeout_seconds: float = 10
    read_retry_attempts: int = 1
    read_retry_delay_seconds: float = 0.3
    max_pages: int = 20
    recent_days: int = 7
    log_level: str = "INFO"
    tool_api_token: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def normalize_token(raw: str | None) -> str | None:
    """Strip whitespace and an optional ``Bearer`` prefix from a preset token."""
    if raw is None:
        return None
    cleaned = raw.strip()
    if cleaned.lower().startswith("bearer "):
        cleaned = cleaned[len("bearer ") :].strip()
    return cleaned or None
