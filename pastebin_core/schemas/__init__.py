"""Request and response schemas."""

from .paste_schemas import (
    CreatedPaste,
    DocumentDraft,
    DocumentReplace,
    DocumentUpload,
    DocumentView,
    LimitDefaults,
    LimitsView,
    PastePatch,
    PasteView,
)

__all__ = [
    "CreatedPaste",
    "DocumentDraft",
    "DocumentReplace",
    "DocumentUpload",
    "DocumentView",
    "LimitDefaults",
    "LimitsView",
    "PastePatch",
    "PasteView",
]
