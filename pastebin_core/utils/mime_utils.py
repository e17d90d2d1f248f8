"""Content type matching for uploaded documents."""

from typing import Iterable

DEFAULT_MIME = "text/plain"

# Binary media is not accepted as paste content
UNSUPPORTED_MIMES = ["image/*", "video/*", "audio/*", "font/*", "application/pdf"]


def normalize_mime(mime: str) -> str:
    """Lowercase a content type and drop any parameters (``; charset=utf-8``)."""
    return mime.split(";", 1)[0].strip().lower()


def contains_mime(patterns: Iterable[str], mime: str) -> bool:
    """
    Check whether a content type matches any pattern.

    Patterns are exact types (``application/pdf``) or wildcards over a top level
    type (``image/*``). A bare ``*/*`` matches everything.

    Example:
        >>> contains_mime(UNSUPPORTED_MIMES, "image/png")
        True
        >>> contains_mime(UNSUPPORTED_MIMES, "text/markdown; charset=utf-8")
        False
    """
    mime = normalize_mime(mime)
    top_level = mime.split("/", 1)[0]

    for pattern in patterns:
        pattern = normalize_mime(pattern)
        if pattern == "*/*" or pattern == mime:
            return True
        if pattern.endswith("/*") and pattern[:-2] == top_level:
            return True
    return False
