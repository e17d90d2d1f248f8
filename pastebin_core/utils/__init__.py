"""Utility modules for the paste engine."""

from .id_utils import IdGenerator, created_at, next_token
from .logger import ContextAwareLogger, configure_logging, get_logger
from .mime_utils import DEFAULT_MIME, UNSUPPORTED_MIMES, contains_mime

__all__ = [
    "ContextAwareLogger",
    "configure_logging",
    "get_logger",
    "IdGenerator",
    "created_at",
    "next_token",
    "DEFAULT_MIME",
    "UNSUPPORTED_MIMES",
    "contains_mime",
]
