"""Application configuration."""

import logging
import sys
from collections.abc import Callable
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import structlog
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Path constants - calculated once at module load
PROJECT_ROOT = Path(__file__).parent.parent.resolve()


class Settings(BaseSettings):
    """Application settings."""

    # The ".env.local" file is for developer-specific and machine-specific settings,
    # such as the database connection string. It overrides ".env".
    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"), env_file_encoding="utf-8", extra="ignore"
    )

    # Database
    DATABASE_URL: str = f"sqlite:///{PROJECT_ROOT / 'processing_host.db'}"

    SECRET_KEY: str = ""

    # API (constants, not from env)
    PROJECT_NAME: str = "Processing Host Sample"
    VERSION: str = "0.1.0"
    REST_BASE_ROUTE: str = "/rest"
    API_GROUP_NAME: str = "v1"

    # Environment
    ENVIRONMENT: Literal["development", "production", "test"] = "development"

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    # Auth
    AUTH_COOKIE_NAME: str = "processing_host_auth"
    AUTH_COOKIE_MAX_AGE_DAYS: int = 14
    COOKIE_SECURE: bool = True
    SAMPLE_USERNAME: str = "SampleUser"
    LOGIN_RATE_LIMIT: str = "10/minute"

    # Processing
    REQUIRE_SIGN_IN_FOR_WRITES: bool = True

    @field_validator("REST_BASE_ROUTE", mode="after")
    @classmethod
    def normalize_base_route(cls, value: str) -> str:
        """Ensure the REST base route starts with a single slash and has no trailing one."""
        return "/" + value.strip("/")

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Refuse to sign cookies with an empty key in production."""
        if self.ENVIRONMENT == "production" and not self.SECRET_KEY:
            msg = "SECRET_KEY is required when ENVIRONMENT is 'production'"
            raise ValueError(msg)
        return self

    @property
    def signing_key(self) -> str:
        """Key used to sign authentication cookies."""
        return self.SECRET_KEY or "development-only-signing-key"


def configure_logging(environment: str = "development") -> None:
    """Configure structured logging with structlog."""
    # Determine if we should use JSON output (production) or console output (dev)
    use_json = environment == "production"

    # Configure stdlib logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if environment == "development" else logging.INFO,
    )

    # Configure structlog
    processors: list[Callable[..., Any]] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if use_json:
        # Production: JSON output
        processors.append(structlog.processors.JSONRenderer())
    else:
        # Development: Console output with colors
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
