"""
Persistent image library: upload and delete.

Two collaborators do the actual work:
- ObjectStorage holds the bytes and hands out public URLs
- ImageRecordStore holds the metadata rows

Both are Protocols, so the handlers here don't know whether they talk to
R2 and Snowflake or to in-memory mocks.

Ordering rules:
- upload writes the object before inserting metadata, and removes the
  object again if the insert fails
- delete removes the object before the metadata row, so a row never points
  at an object we already deleted; a failed object removal is logged and
  the row is deleted anyway
"""

import logging
from typing import Optional, Protocol

from .errors import (
    ImageNotFoundError,
    ImageUploadError,
    ImageValidationError,
    MetadataDeleteError,
    MetadataSaveError,
)
from .models import ImageRecord, ImageUpload, build_storage_path

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class ObjectStorage(Protocol):
    """Key-based blob storage with public URLs."""

    async def put_object(
        self,
        storage_path: str,
        data: bytes,
        content_type: str,
    ) -> None:
        """Store bytes under storage_path."""
        ...

    async def get_public_url(self, storage_path: str) -> str:
        """Return a URL clients can use to fetch the object."""
        ...

    async def remove_object(self, storage_path: str) -> None:
        """Remove the object at storage_path."""
        ...


class ImageRecordStore(Protocol):
    """Persistence for image metadata rows."""

    def insert(self, record: ImageRecord) -> ImageRecord: ...
    def get(self, image_id: str) -> ImageRecord: ...
    def delete(self, image_id: str) -> None: ...


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

class ImageLibrary:
    """
    Upload and delete handlers for persisted images.

    Stateless apart from its collaborators, so a new instance per request
    is fine.
    """

    def __init__(
        self,
        storage: ObjectStorage,
        records: ImageRecordStore,
        path_prefix: str = "processed",
    ) -> None:
        self._storage = storage
        self._records = records
        self._path_prefix = path_prefix

    async def upload(self, image: Optional[ImageUpload]) -> ImageRecord:
        """
        Store an image and record its metadata.

        Raises:
            ImageValidationError: no image was provided
            ImageUploadError: the object store write or URL lookup failed
                (nothing was recorded, any written object was cleaned up)
            MetadataSaveError: the metadata insert failed (object was cleaned up)
        """
        if image is None:
            raise ImageValidationError("No image file provided")

        storage_path = build_storage_path(self._path_prefix, image)

        try:
            await self._storage.put_object(
                storage_path=storage_path,
                data=image.data,
                content_type=image.content_type,
            )
        except Exception as e:
            logger.error(
                "Image upload failed",
                extra={"storage_path": storage_path, "error": str(e)}
            )
            raise ImageUploadError("Failed to upload image") from e

        try:
            public_url = await self._storage.get_public_url(storage_path)
        except Exception as e:
            logger.error(
                "Could not resolve public URL",
                extra={"storage_path": storage_path, "error": str(e)}
            )
            await self._remove_orphan(storage_path)
            raise ImageUploadError("Failed to upload image") from e

        record = ImageRecord(
            filename=image.filename,
            storage_path=storage_path,
            public_url=public_url,
            file_size=image.size,
            mime_type=image.content_type,
        )

        try:
            saved = self._records.insert(record)
        except Exception as e:
            logger.error(
                "Failed to save image metadata",
                extra={"storage_path": storage_path, "error": str(e)}
            )
            await self._remove_orphan(storage_path)
            raise MetadataSaveError("Failed to save image metadata") from e

        logger.info(
            "Image stored",
            extra={
                "image_id": saved.id,
                "storage_path": storage_path,
                "size_bytes": saved.file_size,
                "mime_type": saved.mime_type,
            }
        )

        return saved

    async def delete(self, image_id: str) -> None:
        """
        Delete an image's object and metadata.

        Raises:
            ImageNotFoundError: no record for image_id (or the lookup failed)
            MetadataDeleteError: the metadata row couldn't be deleted
        """
        try:
            record = self._records.get(image_id)
        except Exception as e:
            logger.info(
                "Image lookup failed",
                extra={"image_id": image_id, "error": str(e)}
            )
            raise ImageNotFoundError("Image not found") from e

        try:
            await self._storage.remove_object(record.storage_path)
        except Exception as e:
            logger.warning(
                "Storage deletion failed; deleting metadata anyway",
                extra={
                    "image_id": image_id,
                    "storage_path": record.storage_path,
                    "error": str(e),
                }
            )

        try:
            self._records.delete(image_id)
        except Exception as e:
            logger.error(
                "Database deletion failed",
                extra={"image_id": image_id, "error": str(e)}
            )
            raise MetadataDeleteError("Failed to delete image metadata") from e

        logger.info("Image deleted", extra={"image_id": image_id})

    async def _remove_orphan(self, storage_path: str) -> None:
        """Best-effort removal of an object that has no metadata row."""
        try:
            await self._storage.remove_object(storage_path)
            logger.info("Removed orphaned object", extra={"storage_path": storage_path})
        except Exception as e:
            logger.error(
                "Failed to remove orphaned object",
                extra={"storage_path": storage_path, "error": str(e)}
            )
