"""
Image transform infrastructure.

Implements the ImageTransformer protocol from core.images.remover.
"""

from .transformer import (
    PillowImageTransformer,
    UnavailableImageTransformer,
    create_image_transformer,
)

__all__ = [
    "PillowImageTransformer",
    "UnavailableImageTransformer",
    "create_image_transformer",
]
