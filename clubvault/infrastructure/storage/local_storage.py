"""Local filesystem object store."""
from pathlib import Path, PurePosixPath
from typing import Optional

import aiofiles
import aiofiles.os

from .base import (
    ObjectStore,
    StorageConfig,
    ObjectNotFoundError,
    UploadError,
    DownloadError,
    DeleteError
)


class LocalStorage(ObjectStore):
    """Local filesystem storage backend.

    Stores objects under ``base_path/<key>`` and serves them at
    ``<public_url>/<key>``.
    """

    def __init__(self, config: StorageConfig):
        """Initialize local storage.

        Args:
            config: Storage configuration with base_path
        """
        if config.backend != "local":
            raise ValueError(f"LocalStorage requires backend='local', got '{config.backend}'")

        self.config = config
        self.base_path = Path(config.base_path)
        self.base_url = config.public_url.rstrip("/")
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _get_path(self, key: str) -> Path:
        """Get full filesystem path for a key."""
        # Drop empty, '.' and '..' segments to prevent directory traversal
        parts = [p for p in PurePosixPath(key).parts if p not in ("", ".", "..", "/")]
        if not parts:
            raise ObjectNotFoundError(f"Invalid object key: {key!r}")
        return self.base_path.joinpath(*parts)

    async def put(self, key: str, content: bytes, content_type: Optional[str] = None) -> str:
        """Write object to local filesystem."""
        file_path = self._get_path(key)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            async with aiofiles.open(file_path, 'wb') as f:
                await f.write(content)
        except (IOError, OSError) as e:
            raise UploadError(f"Failed to upload {key}: {e}")

        return self.public_url(key)

    async def get(self, url: str) -> bytes:
        """Read object from local filesystem."""
        key = self.key_for_url(url)
        file_path = self._get_path(key)

        if not file_path.is_file():
            raise ObjectNotFoundError(f"Object not found: {key}")

        try:
            async with aiofiles.open(file_path, 'rb') as f:
                return await f.read()
        except (IOError, OSError) as e:
            raise DownloadError(f"Failed to download {key}: {e}")

    async def delete(self, url: str) -> bool:
        """Delete object from local filesystem."""
        key = self.key_for_url(url)
        file_path = self._get_path(key)

        if not file_path.exists():
            return False

        try:
            await aiofiles.os.remove(file_path)
            return True
        except (IOError, OSError) as e:
            raise DeleteError(f"Failed to delete {key}: {e}")

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/{key.lstrip('/')}"

    def key_for_url(self, url: str) -> str:
        prefix = f"{self.base_url}/"
        if not url.startswith(prefix):
            raise ObjectNotFoundError(f"URL not served by this store: {url}")
        return url[len(prefix):]
