"""
Image transforms using Pillow.

Mirroring is an optional capability. Some deployment targets can't ship
native imaging wheels, so the transformer comes in two variants:

- PillowImageTransformer: available, flips with ImageOps.mirror
- UnavailableImageTransformer: reports unavailable, refuses to transform

Which one a deployment gets is a configuration decision
(IMAGE_FLIP_ENABLED), made once in the factory.
"""

import asyncio
import io
import logging

from ...core.images.errors import ImageTransformUnavailable
from ...core.images.remover import ImageTransformer

logger = logging.getLogger(__name__)


class PillowImageTransformer:
    """Horizontal mirroring backed by Pillow. Output is always PNG."""

    def __init__(self) -> None:
        """
        Pillow is imported here (not at module level) so deployments that
        run with the unavailable variant don't need it installed.
        """
        try:
            from PIL import Image, ImageOps
        except ImportError:
            raise ImportError(
                "Pillow is required for image transforms. Install with: pip install Pillow"
            )

        self._image = Image
        self._image_ops = ImageOps

    @property
    def available(self) -> bool:
        return True

    async def mirror(self, image_data: bytes) -> bytes:
        """
        Flip an image horizontally.

        PNG keeps the alpha channel from background removal and is lossless.
        Pillow is CPU-bound, so the work runs in a worker thread.
        """
        return await asyncio.to_thread(self._mirror_sync, image_data)

    def _mirror_sync(self, image_data: bytes) -> bytes:
        with self._image.open(io.BytesIO(image_data)) as image:
            mirrored = self._image_ops.mirror(image)

        buffer = io.BytesIO()
        mirrored.save(buffer, format="PNG", optimize=True)

        logger.debug(
            "Mirrored image",
            extra={"input_bytes": len(image_data), "output_bytes": buffer.tell()}
        )

        return buffer.getvalue()


class UnavailableImageTransformer:
    """Stand-in for deployments without image transforms."""

    @property
    def available(self) -> bool:
        return False

    async def mirror(self, image_data: bytes) -> bytes:
        raise ImageTransformUnavailable("Image transforms are not available on this platform")


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_image_transformer(enabled: bool = True) -> ImageTransformer:
    """
    Create the image transformer for this deployment.

    Args:
        enabled: If False, return the unavailable variant
    """
    if not enabled:
        logger.info("Image transforms disabled by configuration")
        return UnavailableImageTransformer()

    return PillowImageTransformer()
