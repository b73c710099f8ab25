"""
Image handling logic.

Contains the domain models, the upload/delete library and the background
removal handler.
"""

from .errors import (
    BackgroundRemovalError,
    BackgroundRemovalNotConfigured,
    ImageError,
    ImageNotFoundError,
    ImageTransformUnavailable,
    ImageUploadError,
    ImageValidationError,
    MetadataDeleteError,
    MetadataSaveError,
)
from .library import ImageLibrary, ImageRecordStore, ObjectStorage
from .models import ImageRecord, ImageUpload, ProcessedImage
from .remover import BackgroundRemovalClient, BackgroundRemover, ImageTransformer

__all__ = [
    "BackgroundRemovalClient",
    "BackgroundRemovalError",
    "BackgroundRemovalNotConfigured",
    "BackgroundRemover",
    "ImageError",
    "ImageLibrary",
    "ImageNotFoundError",
    "ImageRecord",
    "ImageRecordStore",
    "ImageTransformUnavailable",
    "ImageTransformer",
    "ImageUpload",
    "ImageUploadError",
    "ImageValidationError",
    "MetadataDeleteError",
    "MetadataSaveError",
    "ObjectStorage",
    "ProcessedImage",
]
