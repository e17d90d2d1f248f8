"""In-process blob store for development and tests."""

import threading
from typing import Dict

from .object_store import ObjectNotFound, ObjectStore


class MemoryObjectStore(ObjectStore):
    """Thread-safe dict-backed store. Contents are lost when the process exits."""

    def __init__(self):
        self._objects: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def put(self, key: str, data: bytes, content_type: str = "text/plain") -> int:
        with self._lock:
            self._objects[key] = bytes(data)
        return len(data)

    def get(self, key: str) -> bytes:
        with self._lock:
            try:
                return self._objects[key]
            except KeyError:
                raise ObjectNotFound(key) from None

    def delete(self, key: str) -> None:
        with self._lock:
            self._objects.pop(key, None)

    def create_buckets(self) -> None:
        pass

    def keys(self) -> set:
        """Snapshot of stored keys."""
        with self._lock:
            return set(self._objects)

    def __len__(self) -> int:
        with self._lock:
            return len(self._objects)
