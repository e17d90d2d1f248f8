"""
Paste storage engine.

Stores pastes (bundles of named documents) with metadata in a relational
database and document bodies in an object store, keeps both consistent
under partial failure, expires pastes by time or view count and rate limits
callers.
"""

from .app import Application
from .config import AppConfig, get_config, reset_config, set_config
from .constants import HttpVerb, RouteCategory
from .exceptions import (
    BaseError,
    Conflict,
    EntropyUnavailable,
    MetadataCommitFailed,
    NotFound,
    ObjectStoreWriteFailed,
    RateLimited,
    StoreUnavailable,
    Unauthorized,
    ValidationRejected,
)
from .schemas.paste_schemas import CreatedPaste, DocumentReplace, DocumentUpload, PastePatch, PasteView

__version__ = "0.1.0"

__all__ = [
    "Application",
    "AppConfig",
    "get_config",
    "reset_config",
    "set_config",
    "HttpVerb",
    "RouteCategory",
    "BaseError",
    "Conflict",
    "EntropyUnavailable",
    "MetadataCommitFailed",
    "NotFound",
    "ObjectStoreWriteFailed",
    "RateLimited",
    "StoreUnavailable",
    "Unauthorized",
    "ValidationRejected",
    "CreatedPaste",
    "DocumentReplace",
    "DocumentUpload",
    "PastePatch",
    "PasteView",
]
