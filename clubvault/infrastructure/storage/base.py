"""Abstract object store interface."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ObjectNotFoundError(StorageError):
    """Object not found in storage."""
    pass


class UploadError(StorageError):
    """Failed to upload object."""
    pass


class DownloadError(StorageError):
    """Failed to download object."""
    pass


class DeleteError(StorageError):
    """Failed to delete object."""
    pass


@dataclass
class StorageConfig:
    """Storage configuration."""
    backend: str  # 'local', 's3', 'minio'

    # Local storage settings
    base_path: Optional[Path] = None
    public_url: str = "/storage"

    # S3/MinIO settings
    endpoint_url: Optional[str] = None
    bucket_name: Optional[str] = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    region: str = "us-east-1"
    use_ssl: bool = True

    def __post_init__(self):
        if self.backend == "local" and self.base_path is None:
            from ...config import UPLOADS_DIR
            self.base_path = Path(UPLOADS_DIR)


class ObjectStore(ABC):
    """Abstract interface for vault object bytes.

    Objects are addressed by key on write and by public URL afterwards,
    since the catalog only records the URL.

    Implementations:
    - LocalStorage: Filesystem storage
    - S3Storage: AWS S3 / MinIO / DigitalOcean Spaces
    """

    @abstractmethod
    async def put(
        self,
        key: str,
        content: bytes,
        content_type: Optional[str] = None
    ) -> str:
        """Store bytes under ``key``.

        Args:
            key: Object key, e.g. ``<uploader>/<timestamp>.<ext>``
            content: Object bytes
            content_type: MIME type of the object

        Returns:
            Public URL of the stored object

        Raises:
            UploadError: If upload fails
        """
        pass

    @abstractmethod
    async def get(self, url: str) -> bytes:
        """Fetch object bytes by public URL.

        Raises:
            ObjectNotFoundError: If the object doesn't exist
            DownloadError: If download fails
        """
        pass

    @abstractmethod
    async def delete(self, url: str) -> bool:
        """Delete an object by public URL.

        Returns:
            True if deleted, False if it didn't exist

        Raises:
            DeleteError: If deletion fails for other reasons
        """
        pass

    @abstractmethod
    def public_url(self, key: str) -> str:
        """Public URL for an object key."""
        pass

    @abstractmethod
    def key_for_url(self, url: str) -> str:
        """Inverse of :meth:`public_url`.

        Raises:
            ObjectNotFoundError: If the URL does not belong to this store
        """
        pass
