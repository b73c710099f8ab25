"""
Image upload endpoint.

Persists an image to object storage and records its metadata, returning
the stored record (including the shareable public URL).
"""

import logging
from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, File, HTTPException, UploadFile, status
from pydantic import BaseModel, Field

from ...core.images.errors import (
    ImageUploadError,
    ImageValidationError,
    MetadataSaveError,
)
from ...core.images.models import ImageRecord
from ..dependencies import ImageLibraryDep
from ..uploads import read_image_upload

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class ImageRecordResponse(BaseModel):
    """Stored image metadata."""
    id: str = Field(description="Image identifier")
    filename: str = Field(description="Original filename")
    storage_path: str = Field(description="Object key inside the bucket")
    public_url: str = Field(description="Shareable URL for the image")
    file_size: int = Field(description="Size in bytes")
    mime_type: str = Field(description="Declared content type")
    created_at: datetime = Field(description="When the record was created")

    @classmethod
    def from_record(cls, record: ImageRecord) -> "ImageRecordResponse":
        return cls(
            id=record.id,
            filename=record.filename,
            storage_path=record.storage_path,
            public_url=record.public_url,
            file_size=record.file_size,
            mime_type=record.mime_type,
            created_at=record.created_at,
        )


class UploadResponse(BaseModel):
    """Response after a successful upload."""
    success: bool = True
    data: ImageRecordResponse


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=UploadResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload an image",
    description="Store an image in object storage and record its metadata",
)
async def upload_image(
    library: ImageLibraryDep,
    image: Annotated[Optional[UploadFile], File(description="Image file")] = None,
) -> UploadResponse:
    """
    Upload an image.

    The object is written first; if the metadata insert then fails, the
    object is removed again and a 500 is returned.
    """
    upload = await read_image_upload(image)

    try:
        record = await library.upload(upload)
    except ImageValidationError as e:
        logger.warning("Upload rejected", extra={"error": str(e)})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except (ImageUploadError, MetadataSaveError) as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    return UploadResponse(data=ImageRecordResponse.from_record(record))
