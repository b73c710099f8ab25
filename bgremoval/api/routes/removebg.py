"""
Background removal endpoints.

POST takes an image (and an optional "flip" flag), removes its background
through the configured service and returns the PNG bytes directly. Nothing
is persisted; clients that want a shareable link POST the result to
/upload afterwards.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status
from fastapi.responses import Response
from pydantic import BaseModel

from ...core.images.errors import (
    BackgroundRemovalError,
    BackgroundRemovalNotConfigured,
    ImageValidationError,
)
from ..dependencies import BackgroundRemoverDep
from ..uploads import content_disposition, parse_flag, read_image_upload

logger = logging.getLogger(__name__)

router = APIRouter()

PROCESSING_ERROR = "Failed to process image"


class EndpointInfo(BaseModel):
    """Static description of the removal endpoint."""
    message: str
    methods: list[str]
    description: str


@router.get(
    "",
    response_model=EndpointInfo,
    summary="Describe the background removal endpoint",
)
async def describe_removebg() -> EndpointInfo:
    return EndpointInfo(
        message="RemoveBG API endpoint",
        methods=["POST"],
        description="Upload an image file to remove its background",
    )


@router.post(
    "",
    response_class=Response,
    status_code=status.HTTP_200_OK,
    summary="Remove an image's background",
    description="Returns the background-removed image as PNG, optionally mirrored",
    responses={
        200: {"content": {"image/png": {}}},
        400: {"description": "Missing, non-image or oversized file"},
        500: {"description": "Background removal failed"},
    },
)
async def remove_background(
    remover: BackgroundRemoverDep,
    image: Annotated[Optional[UploadFile], File(description="Image file")] = None,
    flip: Annotated[Optional[str], Form(description='"true" to mirror the result')] = None,
) -> Response:
    """
    Remove the background from an uploaded image.

    Validation failures are 400s with a specific message. Any failure of
    the removal service, including a missing API key, is a generic 500;
    the cause is only logged. A failed mirror is not an error: the
    unmirrored image is returned.
    """
    upload = await read_image_upload(image)

    try:
        result = await remover.remove_background(upload, flip=parse_flag(flip))
    except ImageValidationError as e:
        logger.warning("Removal request rejected", extra={"error": str(e)})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except BackgroundRemovalNotConfigured:
        logger.error("Background removal service not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=PROCESSING_ERROR,
        )
    except BackgroundRemovalError as e:
        logger.error("Error processing image", extra={"error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=PROCESSING_ERROR,
        )

    headers = {"Content-Disposition": content_disposition(result.filename)}
    if result.warning:
        headers["X-Warning"] = result.warning

    return Response(content=result.data, media_type=result.media_type, headers=headers)
