"""
Constants and enums for the paste engine.

This module centralizes magic strings and numeric constants so the
coordinator, the rate limiter and the configuration agree on names.
"""

from enum import Enum


class LogLevel(str, Enum):
    """Standard logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentVariable(str, Enum):
    """Standard environment variable names."""

    DATABASE_URL = "DATABASE_URL"
    APP_ENV = "APP_ENV"
    LOG_LEVEL = "LOG_LEVEL"
    OBJECT_STORE_BACKEND = "OBJECT_STORE_BACKEND"
    S3_ENDPOINT_URL = "S3_ENDPOINT_URL"
    S3_REGION = "S3_REGION"
    S3_ACCESS_KEY = "S3_ACCESS_KEY"
    S3_SECRET_KEY = "S3_SECRET_KEY"
    S3_BUCKET = "S3_BUCKET"
    SWEEP_INTERVAL_SECONDS = "SWEEP_INTERVAL_SECONDS"


class OperationStatus(str, Enum):
    """Status values reported by operations and sweep cycles."""

    SUCCESS = "success"
    ERROR = "error"
    PARTIAL = "partial"
    CANCELLED = "cancelled"


class RouteCategory(str, Enum):
    """Resource classes the rate limiter budgets separately."""

    PASTE = "paste"
    DOCUMENT = "document"
    CONFIG = "config"


class HttpVerb(str, Enum):
    """Verbs with their own rate limit budget."""

    GET = "get"
    POST = "post"
    PATCH = "patch"
    DELETE = "delete"


class ObjectStoreBackend(str, Enum):
    """Available blob storage backends."""

    S3 = "s3"
    MEMORY = "memory"


class Limits:
    """Fixed sizes that are part of the persisted schema."""

    TOKEN_LENGTH = 25
    DOCUMENT_TYPE_LENGTH = 128
    DOCUMENT_NAME_LENGTH = 255
    ID_TIMESTAMP_SHIFT = 22
    ID_NODE_BITS = 10
    ID_SEQUENCE_BITS = 12


class Timeouts:
    """Timeouts in seconds."""

    OBJECT_STORE_CONNECT = 5
    OBJECT_STORE_READ = 30
    OBJECT_STORE_OPERATION = 30
    SWEEPER_SHUTDOWN = 30
