"""
Centralized configuration management for the paste engine.

Values come from environment variables where one is defined and fall back to
the defaults below. Everything is validated with Pydantic so an inconsistent
limits or rate limit setup fails at startup instead of on the first request.
"""

import os
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

from .constants import EnvironmentVariable, HttpVerb, Limits, LogLevel, ObjectStoreBackend, RouteCategory, Timeouts


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.LOG_LEVEL.value, LogLevel.INFO.value),
        description="Logging level",
    )
    format: str = Field(default="%(message)s", description="Console log format string")

    @field_validator("level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {level.value for level in LogLevel}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class DatabaseSettings(BaseModel):
    """Relational store connection settings."""

    connection_string: str = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.DATABASE_URL.value, "sqlite:///./pastebin.db"
        ),
        description="SQLAlchemy database URL",
    )
    pool_size: int = Field(default=5, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum overflow connections")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    echo: bool = Field(default=False, description="Echo SQL statements")


class ObjectStoreConfig(BaseModel):
    """Blob storage configuration."""

    backend: ObjectStoreBackend = Field(
        default_factory=lambda: ObjectStoreBackend(
            os.getenv(EnvironmentVariable.OBJECT_STORE_BACKEND.value, ObjectStoreBackend.S3.value)
        ),
    )
    endpoint_url: Optional[str] = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.S3_ENDPOINT_URL.value),
        description="S3 compatible endpoint, None for AWS",
    )
    region: Optional[str] = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.S3_REGION.value),
    )
    access_key: Optional[str] = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.S3_ACCESS_KEY.value),
    )
    secret_key: Optional[str] = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.S3_SECRET_KEY.value),
    )
    bucket: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.S3_BUCKET.value, "documents"),
    )
    connect_timeout: int = Field(default=Timeouts.OBJECT_STORE_CONNECT, gt=0)
    read_timeout: int = Field(default=Timeouts.OBJECT_STORE_READ, gt=0)
    max_attempts: int = Field(default=3, ge=1, description="botocore retry attempts")
    operation_timeout: float = Field(
        default=Timeouts.OBJECT_STORE_OPERATION,
        gt=0,
        description="Upper bound a coordinator waits on a single blob operation",
    )
    max_concurrent_writes: int = Field(default=8, ge=1)

    def __repr__(self) -> str:
        return (
            f"ObjectStoreConfig(backend='{self.backend.value}', endpoint_url='{self.endpoint_url}', "
            f"bucket='{self.bucket}', access_key='{self.access_key}', secret_key='***')"
        )


class SizeLimitConfig(BaseModel):
    """Bounds applied to every proposed paste before any store is touched."""

    minimum_total_document_count: int = Field(default=1, ge=1)
    maximum_total_document_count: int = Field(default=10, ge=1)
    minimum_document_size: int = Field(default=1, ge=0)
    maximum_document_size: int = Field(default=5_000_000, ge=1)
    minimum_total_document_size: int = Field(default=1, ge=0)
    maximum_total_document_size: int = Field(default=10_000_000, ge=1)
    minimum_document_name_size: int = Field(default=3, ge=1)
    maximum_document_name_size: int = Field(default=50, ge=1)
    minimum_expiry_hours: Optional[int] = Field(default=None, ge=1)
    maximum_expiry_hours: Optional[int] = Field(default=None, ge=1)
    default_expiry_hours: Optional[int] = Field(default=None, ge=1)
    default_maximum_views: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def check_bounds(self) -> "SizeLimitConfig":
        pairs = [
            ("total_document_count", self.minimum_total_document_count, self.maximum_total_document_count),
            ("document_size", self.minimum_document_size, self.maximum_document_size),
            ("total_document_size", self.minimum_total_document_size, self.maximum_total_document_size),
            ("document_name_size", self.minimum_document_name_size, self.maximum_document_name_size),
        ]
        for name, minimum, maximum in pairs:
            if minimum > maximum:
                raise ValueError(f"minimum_{name} ({minimum}) exceeds maximum_{name} ({maximum})")

        if self.maximum_document_name_size > Limits.DOCUMENT_NAME_LENGTH:
            raise ValueError(
                f"maximum_document_name_size ({self.maximum_document_name_size}) exceeds the "
                f"stored name length ({Limits.DOCUMENT_NAME_LENGTH})"
            )

        if self.maximum_document_size > self.maximum_total_document_size:
            raise ValueError("maximum_document_size exceeds maximum_total_document_size")

        if (
            self.minimum_expiry_hours is not None
            and self.maximum_expiry_hours is not None
            and self.minimum_expiry_hours > self.maximum_expiry_hours
        ):
            raise ValueError("minimum_expiry_hours exceeds maximum_expiry_hours")

        if self.default_expiry_hours is not None:
            if self.maximum_expiry_hours is not None and self.default_expiry_hours > self.maximum_expiry_hours:
                raise ValueError("default_expiry_hours exceeds maximum_expiry_hours")
            if self.minimum_expiry_hours is not None and self.default_expiry_hours < self.minimum_expiry_hours:
                raise ValueError("default_expiry_hours is below minimum_expiry_hours")

        return self


class RateLimitConfig(BaseModel):
    """Request budgets per window, for each layer of the admission gate.

    There is no switch to turn a layer off; set a very large budget instead.
    """

    window_seconds: int = Field(default=60, gt=0)

    global_limit: int = Field(default=800, gt=0)

    global_paste: int = Field(default=500, gt=0)
    get_paste: int = Field(default=200, gt=0)
    post_paste: int = Field(default=100, gt=0)
    patch_paste: int = Field(default=120, gt=0)
    delete_paste: int = Field(default=200, gt=0)

    global_document: int = Field(default=500, gt=0)
    get_document: int = Field(default=200, gt=0)
    post_document: int = Field(default=100, gt=0)
    patch_document: int = Field(default=120, gt=0)
    delete_document: int = Field(default=200, gt=0)

    global_config: int = Field(default=200, gt=0)
    get_config: int = Field(default=200, gt=0)

    def category_budget(self, category: RouteCategory) -> int:
        return getattr(self, f"global_{category.value}")

    def verb_budgets(self) -> Dict[Tuple[RouteCategory, HttpVerb], int]:
        """Budgets for every (category, verb) pair that has one configured."""
        budgets = {}
        for category in RouteCategory:
            for verb in HttpVerb:
                field_name = f"{verb.value}_{category.value}"
                if field_name in type(self).model_fields:
                    budgets[(category, verb)] = getattr(self, field_name)
        return budgets


class SweeperConfig(BaseModel):
    """Background expiry sweeper settings."""

    interval_seconds: float = Field(
        default_factory=lambda: float(os.getenv(EnvironmentVariable.SWEEP_INTERVAL_SECONDS.value, "3000")),
        gt=0,
        description="Seconds between sweep cycles",
    )
    max_workers: int = Field(default=4, ge=1, description="Concurrent paste deletions per cycle")
    batch_size: int = Field(default=100, ge=1, description="Expired pastes fetched per cycle")
    shutdown_timeout: float = Field(default=Timeouts.SWEEPER_SHUTDOWN, gt=0)


class AppConfig(BaseModel):
    """Main application configuration."""

    environment: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.APP_ENV.value, "development"),
        description="Application environment",
    )
    debug: bool = Field(
        default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true",
        description="Debug mode",
    )

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    object_store: ObjectStoreConfig = Field(default_factory=ObjectStoreConfig)
    size_limits: SizeLimitConfig = Field(default_factory=SizeLimitConfig)
    rate_limits: RateLimitConfig = Field(default_factory=RateLimitConfig)
    sweeper: SweeperConfig = Field(default_factory=SweeperConfig)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        return cls()


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None
