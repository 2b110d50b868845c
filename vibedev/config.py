"""Configuration management for VibeDev.

This module provides centralized configuration using Pydantic Settings,
loaded from environment variables and an optional ``.env`` file.

Environment Profiles:
    - DEVELOPMENT: Verbose logging, human-readable output
    - PRODUCTION: INFO logging, JSON logs, metrics enabled
    - TESTING: In-memory database, minimal logging, no file logging
    - STAGING: Production-like with more logging

Example:
    >>> from vibedev.config import settings, SortMode
    >>> print(settings.slug_max_length)
    80
    >>> SortMode("trending")
    <SortMode.TRENDING: 'trending'>
"""

import os
from datetime import timedelta
from enum import IntEnum, StrEnum
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Upper bounds for the slug settings; stored slugs never exceed
# SLUG_MAX_LENGTH_LIMIT plus a "-N" suffix within SLUG_MAX_ATTEMPTS_LIMIT.
SLUG_MAX_LENGTH_LIMIT = 200
SLUG_MAX_ATTEMPTS_LIMIT = 1000


class SortMode(StrEnum):
    """Sort modes exposed on project listings."""

    TRENDING = "trending"
    TOP = "top"
    NEWEST = "newest"


class EntityKind(StrEnum):
    """Content kinds that accrue views, likes and comments."""

    PROJECT = "project"
    POST = "post"

    @property
    def column(self) -> str:
        """Foreign-key column name used by views, likes and comments."""
        return f"{self.value}_id"


class Role(IntEnum):
    """User roles, stored as small integers."""

    ADMIN = 0
    MODERATOR = 1
    USER = 2


class PostStatus(StrEnum):
    """Blog post publication states."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ReportStatus(StrEnum):
    """Comment report moderation states."""

    PENDING = "pending"
    REVIEWED = "reviewed"
    DISMISSED = "dismissed"


class EventStatus(StrEnum):
    """Calendar event approval states."""

    PENDING = "pending"
    APPROVED = "approved"


class Environment(StrEnum):
    """Runtime environment with specific behavior profiles.

    Attributes:
        DEVELOPMENT: Verbose logging, human-readable output
        PRODUCTION: Conservative settings, structured logs
        TESTING: In-memory database, minimal logging, fast execution
        STAGING: Pre-production validation environment
    """

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"
    STAGING = "staging"


class Settings(BaseSettings):
    """Application settings with environment variable support.

    Attributes:
        environment: Runtime environment profile
        data_dir: Base directory for the database and log files
        database_path: Path to SQLite database file
        slug_max_length: Maximum length of generated slugs
        slug_max_attempts: Suffix attempts before slug generation gives up
        category_cache_ttl_seconds: Lifetime of cached category lists
        trending_fetch_limit: Projects fetched for sorted listings
        profile_projects_limit: Projects shown on a profile page
        most_viewed_scan_limit: Recent projects scanned for most-viewed ranking
        stats_procedure_enabled: Whether the per-user stats procedure is installed
        upload_endpoint: External upload endpoint for images
        upload_token: Bearer token for the upload endpoint
        upload_timeout_seconds: HTTP timeout for uploads
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment Configuration
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Runtime environment (development, production, testing, staging)",
    )

    # Data Directory Configuration
    data_dir: Path = Field(
        Path("./data"),
        description="Base directory for all data files (database, logs)",
    )

    # Database Configuration
    database_path: Path = Field(
        Path("vibedev.db"),  # Will be updated to data_dir/vibedev.db by validator
        description="Path to SQLite database file (defaults to data_dir/vibedev.db)",
    )

    # Slug Generation
    slug_max_length: int = Field(
        80,
        ge=8,
        le=SLUG_MAX_LENGTH_LIMIT,
        description="Maximum length of a generated slug",
    )
    slug_max_attempts: int = Field(
        100,
        ge=1,
        le=SLUG_MAX_ATTEMPTS_LIMIT,
        description="Numeric suffixes tried before slug generation gives up",
    )

    # Listing and Aggregation Limits
    category_cache_ttl_seconds: int = Field(
        300,
        ge=0,
        description="Lifetime of the cached active category list (seconds)",
    )
    trending_fetch_limit: int = Field(
        20,
        ge=1,
        le=100,
        description="Number of projects fetched for sorted listings",
    )
    profile_projects_limit: int = Field(
        10,
        ge=1,
        le=100,
        description="Number of projects listed on a profile page",
    )
    most_viewed_scan_limit: int = Field(
        100,
        ge=1,
        le=1000,
        description="Recent projects scanned when ranking by views",
    )
    stats_procedure_enabled: bool = Field(
        default=True,
        description="Expose the get_user_projects_with_stats stored procedure",
    )

    # Upload Endpoint
    upload_endpoint: Optional[str] = Field(
        default=None,
        description="Upload endpoint URL returning the final asset URL",
    )
    upload_token: Optional[str] = Field(
        default=None,
        description="Bearer token for the upload endpoint",
    )
    upload_timeout_seconds: float = Field(
        30.0,
        gt=0,
        description="HTTP timeout for uploads (seconds)",
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_to_file: bool = Field(
        default=True,
        description="Enable file logging in addition to console",
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format (recommended for production)",
    )

    # Observability
    metrics_enabled: bool = Field(
        default=True,
        description="Record Prometheus metrics for store operations and actions",
    )

    @field_validator("data_dir", mode="before")
    @classmethod
    def expand_data_dir(cls, v: str | Path) -> Path:
        """Expand and resolve data directory path."""
        path = Path(v).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    @model_validator(mode="after")
    def set_database_path_default(self) -> "Settings":
        """Set database_path to data_dir/vibedev.db if not explicitly provided."""
        if self.database_path == Path("vibedev.db"):
            self.database_path = self.data_dir / "vibedev.db"
        if str(self.database_path) != ":memory:":
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
        return self

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate the log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode="after")
    def apply_environment_profile(self) -> "Settings":
        """Apply environment-specific defaults.

        Profiles:
            - PRODUCTION: INFO logging, JSON logs, metrics enabled
            - DEVELOPMENT: DEBUG logging, human-readable logs
            - TESTING: In-memory database, ERROR logging, no file logging
            - STAGING: INFO logging, JSON logs

        Returns:
            Modified settings instance with environment-specific adjustments
        """
        if self.environment == Environment.PRODUCTION:
            if self.log_level == "DEBUG":
                self.log_level = "INFO"
            self.log_json = True
            self.metrics_enabled = True

        elif self.environment == Environment.DEVELOPMENT:
            self.log_level = "DEBUG"
            self.log_json = False

        elif self.environment == Environment.TESTING:
            self.database_path = Path(":memory:")
            self.log_level = "ERROR"
            self.log_to_file = False
            self.log_json = False

        elif self.environment == Environment.STAGING:
            self.log_level = "INFO"
            self.log_json = True

        return self

    @property
    def category_cache_ttl(self) -> timedelta:
        """Get category cache lifetime as timedelta."""
        return timedelta(seconds=self.category_cache_ttl_seconds)

    @property
    def database_url(self) -> str:
        """Get SQLAlchemy database URL."""
        return f"sqlite:///{self.database_path}"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == Environment.TESTING

    @property
    def has_upload_endpoint(self) -> bool:
        """Check if an upload endpoint is configured."""
        return bool(self.upload_endpoint)

    def redact_token(self, token: Optional[str] = None) -> str:
        """Redact sensitive token for logging.

        Args:
            token: Token to redact (defaults to upload_token)

        Returns:
            Redacted token string
        """
        token = token or self.upload_token
        if not token:
            return "None"
        return f"{token[:8]}...{token[-4:]}" if len(token) > 12 else "***"


def get_settings() -> Settings:
    """Get settings instance.

    Returns:
        Configured Settings instance
    """
    if "VIBEDEV_ENV" in os.environ and "ENVIRONMENT" not in os.environ:
        os.environ["ENVIRONMENT"] = os.environ["VIBEDEV_ENV"]
    return Settings()


# Global settings instance
settings = get_settings()
