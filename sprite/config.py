"""Application configuration via Pydantic settings."""

from __future__ import annotations

import logging
import os
from typing import Optional

from pydantic import Field, field_validator

try:  # pragma: no cover - import guard
    from pydantic_settings import BaseSettings, SettingsConfigDict
except ModuleNotFoundError as exc:  # pragma: no cover - executed at import time
    raise ImportError(
        "`pydantic-settings` is required. Install it with `pip install pydantic-settings`."
    ) from exc


class Settings(BaseSettings):
    """Runtime application configuration.

    Environment variables are loaded from ``.env`` located in the project root.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # Database configuration
    database_url: str = Field(
        default="postgresql://sprite@localhost:5432/sprite",
        alias="DATABASE_URL",
    )
    db_host: str = Field(default="localhost", alias="DB_HOST")
    db_port: int = Field(default=5432, alias="DB_PORT")
    db_name: str = Field(default="sprite", alias="DB_NAME")
    db_user: str = Field(default="sprite", alias="DB_USER")
    db_password: Optional[str] = Field(default=None, alias="DB_PASSWORD")

    # Logging and runtime
    log_level: int = Field(default=logging.INFO, alias="LOG_LEVEL")
    public_origin: Optional[str] = Field(default=None, alias="PUBLIC_ORIGIN")

    # Session tokens issued by the auth provider
    session_secret: Optional[str] = Field(default=None, alias="SESSION_SECRET")
    session_max_age: int = Field(default=7 * 24 * 60 * 60, alias="SESSION_MAX_AGE")

    # Skill assessment
    skill_quiz_topic: str = Field(default="Skill Assessment", alias="SKILL_QUIZ_TOPIC")
    skill_quiz_question_limit: int = Field(default=5, alias="SKILL_QUIZ_QUESTION_LIMIT")
    quiz_attempt_retries: int = Field(default=3, alias="QUIZ_ATTEMPT_RETRIES")

    @field_validator("log_level", mode="before")
    @classmethod
    def parse_log_level(cls, v: str | int | float) -> int:  # pragma: no cover - simple parsing
        if isinstance(v, str):
            if v.lower() in {"1", "true", "debug"}:
                return logging.DEBUG
            level = logging.getLevelName(v.upper())
            if isinstance(level, int):
                return level
            try:
                return int(v)
            except ValueError:
                return logging.INFO
        if isinstance(v, (int, float)):
            return int(v)
        raise TypeError(f"Unsupported log level type: {type(v)!r}")

    @field_validator("quiz_attempt_retries", "skill_quiz_question_limit")
    @classmethod
    def positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v


# Instantiate settings for external use
settings = Settings()


def get_settings() -> Settings:
    """Return the active settings instance."""

    return settings


def reload_settings() -> Settings:
    """Rebuild settings from the current environment.

    The module level ``settings`` object is replaced in place so modules that
    call :func:`get_settings` observe the new values.
    """

    global settings
    settings = Settings()
    return settings


def get_db_password() -> Optional[str]:
    """Return the database password from the environment.

    ``Settings`` loads variables from a ``.env`` file which can cache values
    across imports. Querying ``os.environ`` directly ensures we always get
    the current value and avoids any cached defaults.
    """

    return os.environ.get("DB_PASSWORD")
