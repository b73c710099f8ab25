"""
Background removal handler.

Validates an uploaded image, sends it to a background removal service and
optionally mirrors the result. Like the library handlers, it only talks to
its collaborators through Protocols:

- BackgroundRemovalClient: the remote service (remove.bg in production)
- ImageTransformer: horizontal mirroring, which may not be available on
  every deployment

Mirroring is a non-critical step. If it's unavailable or fails, the client
still gets the background-removed image, just not mirrored.
"""

import logging
from typing import Optional, Protocol

from .errors import ImageTransformUnavailable, ImageValidationError
from .models import ImageUpload, ProcessedImage, download_filename

logger = logging.getLogger(__name__)

DEFAULT_MAX_IMAGE_SIZE_BYTES = 10 * 1024 * 1024
FLIP_UNAVAILABLE_WARNING = "Flip functionality not available on this platform"


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class BackgroundRemovalClient(Protocol):
    """
    Interface for background removal services.

    Implementations raise BackgroundRemovalError on any failure and
    BackgroundRemovalNotConfigured when they have no credentials.
    """

    async def remove_background(self, image: ImageUpload) -> bytes:
        """Return the image with its background made transparent (PNG)."""
        ...


class ImageTransformer(Protocol):
    """
    Image transforms that may or may not be installed.

    Callers check `available` rather than probing for libraries, so both
    variants can be exercised in tests.
    """

    @property
    def available(self) -> bool: ...

    async def mirror(self, image_data: bytes) -> bytes:
        """Flip horizontally and re-encode losslessly."""
        ...


# ---------------------------------------------------------------------------
# Handler
# ---------------------------------------------------------------------------

class BackgroundRemover:
    """
    Validate → remove background → (mirror) → respond.

    Configuration (size limit) and capabilities are injected at
    construction; nothing is read from the environment here.
    """

    def __init__(
        self,
        client: BackgroundRemovalClient,
        transformer: ImageTransformer,
        max_size_bytes: int = DEFAULT_MAX_IMAGE_SIZE_BYTES,
    ) -> None:
        self._client = client
        self._transformer = transformer
        self._max_size_bytes = max_size_bytes

    def validate(self, image: Optional[ImageUpload]) -> ImageUpload:
        """
        Check an upload before any remote call is made.

        Raises ImageValidationError with a client-facing message.
        """
        if image is None:
            raise ImageValidationError("No image file provided")

        if not image.is_image:
            raise ImageValidationError("File must be an image")

        if image.size > self._max_size_bytes:
            max_mb = self._max_size_bytes // (1024 * 1024)
            raise ImageValidationError(
                f"File size too large. Maximum {max_mb}MB allowed."
            )

        return image

    async def remove_background(
        self,
        image: Optional[ImageUpload],
        flip: bool = False,
    ) -> ProcessedImage:
        """
        Remove the background of an image, mirroring it if requested.

        Raises:
            ImageValidationError: missing, non-image or oversized upload
            BackgroundRemovalError: the removal service failed or isn't configured
        """
        image = self.validate(image)

        logger.info(
            "Removing background",
            extra={
                "image_filename": image.filename,
                "content_type": image.content_type,
                "size_bytes": image.size,
                "flip": flip,
            }
        )

        processed = await self._client.remove_background(image)

        if not flip:
            return ProcessedImage(
                data=processed,
                filename=download_filename(image.filename, flipped=False),
            )

        if not self._transformer.available:
            logger.warning(
                "Flip requested but image transforms are unavailable",
                extra={"image_filename": image.filename}
            )
            return ProcessedImage(
                data=processed,
                filename=download_filename(image.filename, flipped=False),
                warning=FLIP_UNAVAILABLE_WARNING,
            )

        try:
            mirrored = await self._transformer.mirror(processed)
        except ImageTransformUnavailable:
            logger.warning(
                "Image transforms became unavailable",
                extra={"image_filename": image.filename}
            )
            return ProcessedImage(
                data=processed,
                filename=download_filename(image.filename, flipped=False),
                warning=FLIP_UNAVAILABLE_WARNING,
            )
        except Exception as e:
            logger.error(
                "Error applying flip; returning unflipped image",
                extra={"image_filename": image.filename, "error": str(e)},
                exc_info=e,
            )
            return ProcessedImage(
                data=processed,
                filename=download_filename(image.filename, flipped=False),
            )

        logger.debug("Flip applied", extra={"image_filename": image.filename})

        return ProcessedImage(
            data=mirrored,
            filename=download_filename(image.filename, flipped=True),
            flipped=True,
        )
