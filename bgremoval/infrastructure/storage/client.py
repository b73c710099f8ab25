"""
Object storage client for processed images.

Supports Cloudflare R2 (S3-compatible) with mock mode for local development.
Using R2 because:
- No egress fees (images are served straight from the bucket)
- Public bucket URLs make shareable links trivial
- Same S3 API means we could swap to actual S3 if needed

Mock mode stores objects in memory, enabling API testing without
provisioning actual object storage.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from ...core.images.library import ObjectStorage

logger = logging.getLogger(__name__)

# S3 caps presigned URLs at 7 days
MAX_PRESIGNED_EXPIRY_SECONDS = 7 * 24 * 3600


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


@dataclass
class StorageConfig:
    """
    Configuration for R2/S3-compatible storage.

    public_base_url is the bucket's public domain (r2.dev subdomain or a
    custom domain). Without it, links are presigned URLs that expire.
    """
    access_key_id: str
    secret_access_key: str
    bucket_name: str
    endpoint_url: str
    public_base_url: Optional[str] = None
    region: str = "auto"  # R2 uses 'auto' for region


class R2StorageClient:
    """
    Cloudflare R2 object storage client.

    Uses boto3 because R2 is S3-compatible. boto3 is synchronous, so calls
    run in a worker thread to keep the event loop free.
    """

    def __init__(self, config: StorageConfig) -> None:
        """
        Initialize R2 client with boto3.

        boto3 is imported here (not at module level) so mock mode doesn't
        need it installed.
        """
        try:
            import boto3
            from botocore.config import Config
        except ImportError:
            raise ImportError(
                "boto3 is required for R2 storage. Install with: pip install boto3"
            )

        self._config = config

        # R2 requires v4 signatures and path-style addressing
        boto_config = Config(
            signature_version='s3v4',
            s3={'addressing_style': 'path'},
        )

        self._s3_client = boto3.client(
            's3',
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            region_name=config.region,
            config=boto_config,
        )

        logger.info(
            "Initialized R2 storage client",
            extra={
                "bucket": config.bucket_name,
                "endpoint": config.endpoint_url,
            }
        )

    async def put_object(
        self,
        storage_path: str,
        data: bytes,
        content_type: str,
    ) -> None:
        """Upload bytes to R2 under storage_path."""
        try:
            await asyncio.to_thread(
                self._s3_client.put_object,
                Bucket=self._config.bucket_name,
                Key=storage_path,
                Body=data,
                ContentType=content_type,
            )

            logger.debug(
                "Uploaded object",
                extra={
                    "storage_path": storage_path,
                    "content_type": content_type,
                    "size_bytes": len(data),
                }
            )

        except Exception as e:
            logger.error(
                "Failed to upload object",
                extra={"storage_path": storage_path, "error": str(e)}
            )
            raise StorageError(f"Upload failed: {e}") from e

    async def get_public_url(self, storage_path: str) -> str:
        """
        Return a shareable URL for the object.

        With a public base URL configured this is a plain, permanent link.
        Otherwise we fall back to a presigned URL with the longest expiry
        S3 allows.
        """
        if self._config.public_base_url:
            base = self._config.public_base_url.rstrip("/")
            return f"{base}/{storage_path}"

        try:
            return await asyncio.to_thread(
                self._s3_client.generate_presigned_url,
                'get_object',
                Params={
                    'Bucket': self._config.bucket_name,
                    'Key': storage_path,
                },
                ExpiresIn=MAX_PRESIGNED_EXPIRY_SECONDS,
            )

        except Exception as e:
            logger.error(
                "Failed to generate presigned URL",
                extra={"storage_path": storage_path, "error": str(e)}
            )
            raise StorageError(f"Presigned URL generation failed: {e}") from e

    async def remove_object(self, storage_path: str) -> None:
        """Delete a single object from R2."""
        try:
            await asyncio.to_thread(
                self._s3_client.delete_object,
                Bucket=self._config.bucket_name,
                Key=storage_path,
            )

            logger.info("Deleted object", extra={"storage_path": storage_path})

        except Exception as e:
            logger.error(
                "Failed to delete object",
                extra={"storage_path": storage_path, "error": str(e)}
            )
            raise StorageError(f"Delete failed: {e}") from e


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockStorageClient:
    """
    In-memory storage for local development.

    Objects are stored in a dictionary and "URLs" are mock URIs.
    Not suitable for production, but perfect for development and testing.
    """

    def __init__(self) -> None:
        # {storage_path: (bytes, content_type)}
        self._objects: dict[str, tuple[bytes, str]] = {}
        logger.info("Initialized mock storage client (in-memory)")

    async def put_object(
        self,
        storage_path: str,
        data: bytes,
        content_type: str,
    ) -> None:
        """Store object in memory."""
        self._objects[storage_path] = (data, content_type)

        logger.debug(
            "Stored object in mock storage",
            extra={"storage_path": storage_path, "size_bytes": len(data)}
        )

    async def get_public_url(self, storage_path: str) -> str:
        if storage_path not in self._objects:
            raise StorageError(f"Object not found: {storage_path}")

        return f"mock://storage/{storage_path}"

    async def remove_object(self, storage_path: str) -> None:
        """Remove object from memory."""
        if storage_path not in self._objects:
            raise StorageError(f"Object not found: {storage_path}")

        del self._objects[storage_path]

        logger.debug("Deleted object from mock storage", extra={"storage_path": storage_path})

    # Helper methods for testing
    def _get_object(self, storage_path: str) -> Optional[tuple[bytes, str]]:
        """Get stored object (for test assertions)."""
        return self._objects.get(storage_path)

    def _keys(self) -> list[str]:
        return list(self._objects)


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> ObjectStorage:
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return mock client for testing

    Returns:
        ObjectStorage implementation (R2 or Mock)
    """
    if mock_mode:
        return MockStorageClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return R2StorageClient(config)
