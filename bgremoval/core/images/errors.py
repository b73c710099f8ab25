"""
Domain errors raised by the image handlers.

The API layer maps these to HTTP responses. Messages on the 5xx errors are
safe to show to clients; the underlying cause is chained and logged.
"""


class ImageError(Exception):
    """Base class for image handling failures."""
    pass


class ImageValidationError(ImageError):
    """Raised when a client sends something we can't accept (400)."""
    pass


class ImageNotFoundError(ImageError):
    """Raised when a requested image record doesn't exist (404)."""
    pass


class ImageUploadError(ImageError):
    """Raised when writing the object to storage fails."""
    pass


class MetadataSaveError(ImageError):
    """Raised when the metadata insert fails after the object was stored."""
    pass


class MetadataDeleteError(ImageError):
    """Raised when the metadata row can't be deleted."""
    pass


class BackgroundRemovalError(ImageError):
    """Raised when the background removal service fails."""
    pass


class BackgroundRemovalNotConfigured(BackgroundRemovalError):
    """Raised when no API key is configured for the removal service."""
    pass


class ImageTransformUnavailable(ImageError):
    """Raised when image transforms aren't available on this deployment."""
    pass
