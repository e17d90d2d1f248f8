"""Service layer."""

from .base_service import BaseService
from .blob_transaction import BlobTransaction, PendingBlob
from .storage_coordinator import StorageCoordinator

__all__ = ["BaseService", "BlobTransaction", "PendingBlob", "StorageCoordinator"]
