"""
Image delete endpoint.

Removes the stored object (best effort) and then the metadata row.
"""

import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from ...core.images.errors import ImageNotFoundError, MetadataDeleteError
from ..dependencies import DeletionLibraryDep

logger = logging.getLogger(__name__)

router = APIRouter()


class DeleteResponse(BaseModel):
    success: bool = True
    message: str = "Image deleted successfully"


@router.delete(
    "/{image_id}",
    response_model=DeleteResponse,
    status_code=status.HTTP_200_OK,
    summary="Delete an image",
    description="Delete a stored image and its metadata",
    responses={404: {"description": "Image not found"}},
)
async def delete_image(
    image_id: str,
    library: DeletionLibraryDep,
) -> DeleteResponse:
    """
    Delete an image by ID.

    A failure to remove the object from storage is logged but doesn't
    fail the request; the metadata row is deleted regardless.
    """
    try:
        await library.delete(image_id)
    except ImageNotFoundError as e:
        logger.info("Delete target not found", extra={"image_id": image_id})
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except MetadataDeleteError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    return DeleteResponse()
