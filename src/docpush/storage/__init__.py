"""Object storage backends."""

from docpush.storage.base import ListResult, StorageBackend, StorageEntry, StorageResult
from docpush.storage.s3 import S3Storage, create_s3_client

__all__ = [
    "ListResult",
    "S3Storage",
    "StorageBackend",
    "StorageEntry",
    "StorageResult",
    "create_s3_client",
]
