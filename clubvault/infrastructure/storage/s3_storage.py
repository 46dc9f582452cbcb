"""S3-compatible object store (AWS S3, MinIO, DigitalOcean Spaces)."""
import asyncio
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .base import (
    ObjectStore,
    StorageConfig,
    StorageError,
    ObjectNotFoundError,
    UploadError,
    DownloadError,
    DeleteError
)


class S3Storage(ObjectStore):
    """S3-compatible storage backend.

    boto3 calls are blocking, so each one runs in a worker thread to keep
    concurrent exports responsive.
    """

    def __init__(self, config: StorageConfig):
        """Initialize S3 storage.

        Args:
            config: Storage configuration with S3 settings
        """
        if config.backend not in ("s3", "minio"):
            raise ValueError(
                f"S3Storage requires backend='s3' or 'minio', got '{config.backend}'"
            )

        self.config = config
        self.bucket = config.bucket_name

        # Build boto3 client kwargs
        client_kwargs = {
            "service_name": "s3",
            "aws_access_key_id": config.access_key,
            "aws_secret_access_key": config.secret_key,
            "region_name": config.region,
        }

        # Custom endpoint for MinIO/DigitalOcean
        if config.endpoint_url:
            client_kwargs["endpoint_url"] = config.endpoint_url
            client_kwargs["use_ssl"] = config.use_ssl

        self.client = boto3.client(**client_kwargs)
        self._ensure_bucket()

    def _ensure_bucket(self):
        """Create bucket if it doesn't exist."""
        try:
            self.client.head_bucket(Bucket=self.bucket)
        except BotoCoreError as e:
            raise StorageError(f"Cannot reach bucket {self.bucket}: {e}")
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            if error_code != '404':
                raise StorageError(f"Cannot access bucket {self.bucket}: {e}")
            try:
                if self.config.region == 'us-east-1':
                    self.client.create_bucket(Bucket=self.bucket)
                else:
                    self.client.create_bucket(
                        Bucket=self.bucket,
                        CreateBucketConfiguration={
                            'LocationConstraint': self.config.region
                        }
                    )
            except (ClientError, BotoCoreError) as create_error:
                raise StorageError(
                    f"Failed to create bucket {self.bucket}: {create_error}"
                )

    @property
    def _endpoint(self) -> str:
        endpoint = self.config.endpoint_url or f"https://s3.{self.config.region}.amazonaws.com"
        return endpoint.rstrip("/")

    async def put(self, key: str, content: bytes, content_type: Optional[str] = None) -> str:
        """Upload object to S3."""
        extra_args = {}
        if content_type:
            extra_args['ContentType'] = content_type

        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=content,
                **extra_args
            )
        except (ClientError, BotoCoreError) as e:
            raise UploadError(f"Failed to upload {key}: {e}")

        return self.public_url(key)

    async def get(self, url: str) -> bytes:
        """Download object from S3."""
        key = self.key_for_url(url)

        try:
            response = await asyncio.to_thread(
                self.client.get_object, Bucket=self.bucket, Key=key
            )
            return await asyncio.to_thread(response['Body'].read)
        except BotoCoreError as e:
            raise DownloadError(f"Failed to download {key}: {e}")
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            if error_code == 'NoSuchKey':
                raise ObjectNotFoundError(f"Object not found: {key}")
            raise DownloadError(f"Failed to download {key}: {e}")

    async def delete(self, url: str) -> bool:
        """Delete object from S3."""
        key = self.key_for_url(url)

        try:
            await asyncio.to_thread(
                self.client.delete_object, Bucket=self.bucket, Key=key
            )
            return True
        except BotoCoreError as e:
            raise DeleteError(f"Failed to delete {key}: {e}")
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code', 'Unknown')
            if error_code == 'NoSuchKey':
                return False
            raise DeleteError(f"Failed to delete {key}: {e}")

    def public_url(self, key: str) -> str:
        return f"{self._endpoint}/{self.bucket}/{key.lstrip('/')}"

    def key_for_url(self, url: str) -> str:
        prefix = f"{self._endpoint}/{self.bucket}/"
        if not url.startswith(prefix):
            raise ObjectNotFoundError(f"URL not served by this bucket: {url}")
        return url[len(prefix):]
