"""Session-scoped data access for pastes, documents and tokens."""

from .base_repository import BaseRepository
from .document_repository import DocumentRepository
from .paste_repository import PasteRepository
from .paste_token_repository import PasteTokenRepository

__all__ = ["BaseRepository", "DocumentRepository", "PasteRepository", "PasteTokenRepository"]
