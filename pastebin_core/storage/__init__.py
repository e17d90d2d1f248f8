"""Blob storage backends for document contents."""

from .memory_object_store import MemoryObjectStore
from .object_store import ObjectNotFound, ObjectStore, document_key
from .s3_object_store import S3ObjectStore

__all__ = ["MemoryObjectStore", "ObjectNotFound", "ObjectStore", "S3ObjectStore", "document_key"]
