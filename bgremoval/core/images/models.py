"""
Domain models for stored and processed images.

These models have no dependencies on FastAPI, boto3 or Snowflake. The
repository and routes translate to and from them.
"""

import mimetypes
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Optional
from uuid import uuid4


DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class ImageUpload:
    """
    An image file as received from a client.

    Frozen because an upload is a value: handlers read it, they never
    change it.
    """
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    @property
    def extension(self) -> str:
        """
        File extension without the dot.

        Taken from the filename when it has one, otherwise guessed from
        the content type. Unknown types fall back to "bin".
        """
        suffix = PurePosixPath(self.filename).suffix
        if suffix:
            return suffix[1:]
        guessed = mimetypes.guess_extension(self.content_type or "")
        if guessed:
            return guessed[1:]
        return "bin"


@dataclass
class ImageRecord:
    """
    Metadata row for an image persisted in object storage.

    The id is assigned by the application, not the database, so the
    same value can be returned to the client without a second query.
    """
    filename: str
    storage_path: str
    public_url: str
    file_size: int
    mime_type: str
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if self.file_size < 0:
            raise ValueError("file_size cannot be negative")
        if not self.storage_path:
            raise ValueError("storage_path is required")


@dataclass(frozen=True)
class ProcessedImage:
    """Result of a background removal, ready to send back to the client."""
    data: bytes
    filename: str
    flipped: bool = False
    warning: Optional[str] = None
    media_type: str = "image/png"


def build_storage_path(prefix: str, upload: ImageUpload) -> str:
    """Build a collision-free storage key: {prefix}/{uuid4}.{ext}"""
    unique_name = f"{uuid4()}.{upload.extension}"
    prefix = prefix.strip("/")
    if not prefix:
        return unique_name
    return f"{prefix}/{unique_name}"


def download_filename(original_name: str, flipped: bool) -> str:
    """Filename hint for the Content-Disposition header."""
    marker = "flipped-" if flipped else ""
    return f"removed-bg-{marker}{original_name}"
