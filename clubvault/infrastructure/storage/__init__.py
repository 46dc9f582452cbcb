"""Object store abstraction layer.

Supports multiple backends: local filesystem, S3, MinIO, etc.
"""
from .base import (
    ObjectStore,
    StorageConfig,
    StorageError,
    ObjectNotFoundError,
    UploadError,
    DownloadError,
    DeleteError,
)
from .local_storage import LocalStorage
from .factory import get_storage, get_storage_from_config, reset_storage

__all__ = [
    "ObjectStore",
    "StorageConfig",
    "StorageError",
    "ObjectNotFoundError",
    "UploadError",
    "DownloadError",
    "DeleteError",
    "LocalStorage",
    "get_storage",
    "get_storage_from_config",
    "reset_storage",
]
