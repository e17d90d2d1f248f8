"""
Key-addressed blob storage interface.

Every operation is atomic for its own key and there is no multi-key
transaction; the storage coordinator builds cross-store atomicity on top of
these primitives.
"""

from abc import ABC, abstractmethod

from ..exceptions import NotFound


def document_key(paste_id: int, document_id: int) -> str:
    """Object key for a document blob, namespaced by its paste."""
    return f"{paste_id}/{document_id}"


class ObjectNotFound(NotFound):
    """No blob is stored under the key."""

    def __init__(self, key: str, **kwargs):
        super().__init__(f"Object not found: {key}", key=key, **kwargs)


class ObjectStore(ABC):
    """
    Abstract blob store.

    Implementations raise ``ObjectNotFound`` for a missing key on ``get`` and
    ``StoreUnavailable`` for any transport or backend failure. ``delete`` of a
    missing key succeeds.
    """

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str = "text/plain") -> int:
        """Store ``data`` under ``key`` and return the stored size in bytes."""

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Return the blob stored under ``key``."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the blob stored under ``key``."""

    @abstractmethod
    def create_buckets(self) -> None:
        """Make sure the backing container exists."""

    def get_store_name(self) -> str:
        return self.__class__.__name__
