from functools import lru_cache
import json
import logging
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# backend/.env, independent of the working directory uvicorn was started from.
ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


def _parse_origin_list(value: str) -> list[str]:
    """Accept either a JSON array or a comma separated string."""
    text = value.strip()
    if text.startswith("["):
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            decoded = None
        if isinstance(decoded, list):
            return [str(item).strip() for item in decoded if str(item).strip()]
    return [item.strip() for item in text.split(",") if item.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=str(ENV_FILE), env_file_encoding="utf-8", extra="ignore")

    project_name: str = "MedSched API"
    api_prefix: str = "/api"
    log_level: str = "INFO"

    # Storage
    database_url: str = "sqlite+pysqlite:///./medsched.db"
    auto_create_schema: bool = True

    # Bearer tokens issued by the campus identity service
    jwt_secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # Outgoing mail for schedule notices
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_from_email: str | None = None
    smtp_from_name: str = "MedSched"
    smtp_use_tls: bool = True
    smtp_use_ssl: bool = False
    smtp_timeout_seconds: int = Field(default=15, ge=1)
    smtp_retry_attempts: int = Field(default=2, ge=1)
    smtp_retry_backoff_seconds: float = Field(default=1.0, ge=0)
    notify_by_email: bool = False

    # Request guards
    max_request_size_bytes: int = Field(default=2_500_000, ge=1)
    max_import_rows: int = Field(default=500, ge=1)
    security_enable_hsts: bool = False
    security_hsts_max_age_seconds: int = 31536000
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_cors_origins(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            return _parse_origin_list(value)
        return value

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unsupported log level: {value}")
        return level


@lru_cache
def get_settings() -> Settings:
    return Settings()
