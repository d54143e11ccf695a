"""Environment configuration and validation.

This module defines strongly-typed application settings loaded from environment variables
(optionally via a local `.env` file).
"""

from __future__ import annotations

import logging

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings have defaults, so an empty environment is valid.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    max_alternatives: int = Field(default=3, ge=1, alias="NL_FORMULA_MAX_ALTERNATIVES")
    suggestion_limit: int = Field(default=5, ge=1, alias="NL_FORMULA_SUGGESTION_LIMIT")
    prefer_cell_references: bool = Field(default=False, alias="NL_FORMULA_PREFER_CELL_REFERENCES")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that the log level is one of the standard `logging` level names."""

        level = value.strip().upper()
        if level not in _LOG_LEVELS or not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}")
        return level


def load_settings() -> Settings:
    """Load and validate settings from environment variables.

    Raises:
        RuntimeError: If the environment configuration is invalid.
    """

    try:
        return Settings()
    except ValidationError as exc:
        raise RuntimeError(f"Invalid environment configuration: {exc}") from exc
