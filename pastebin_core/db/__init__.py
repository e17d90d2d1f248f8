"""
SQLAlchemy models and database configuration for pastes.
"""

from .db_base import UTCDateTime, ensure_utc, utc_now
from .db_config import Base, DatabaseConfig, DatabaseManager, import_all_models
from .db_paste_models import Document, Paste, PasteToken

__all__ = [
    # Base definitions
    "Base",
    "UTCDateTime",
    "ensure_utc",
    "utc_now",
    # Configuration
    "DatabaseConfig",
    "DatabaseManager",
    "import_all_models",
    # Models
    "Document",
    "Paste",
    "PasteToken",
]
