"""
Conversion from multipart uploads to domain values.

Routes hand FastAPI's UploadFile to read_image_upload and pass the result
to the core handlers, which never see Starlette types.
"""

from typing import Optional
from urllib.parse import quote

from fastapi import UploadFile

from ..core.images.models import DEFAULT_CONTENT_TYPE, ImageUpload


async def read_image_upload(upload: Optional[UploadFile]) -> Optional[ImageUpload]:
    """
    Read an UploadFile into an ImageUpload.

    Returns None when no file was sent. Browsers submit an empty part with
    no filename when the file input was left blank; that counts as missing.
    """
    if upload is None:
        return None

    data = await upload.read()
    if not upload.filename and not data:
        return None

    return ImageUpload(
        filename=upload.filename or "image",
        content_type=upload.content_type or DEFAULT_CONTENT_TYPE,
        data=data,
    )


def parse_flag(value: Optional[str]) -> bool:
    """Form flags are strings; only "true" (any case) switches them on."""
    return (value or "").strip().lower() == "true"


def content_disposition(filename: str) -> str:
    """
    Build an attachment Content-Disposition header.

    Header values must be latin-1, so non-ASCII names go in the RFC 5987
    filename* parameter with an ASCII fallback.
    """
    safe_name = filename.replace('"', "").replace("\\", "")
    try:
        safe_name.encode("ascii")
    except UnicodeEncodeError:
        fallback = safe_name.encode("ascii", "ignore").decode("ascii") or "image.png"
        return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(safe_name)}"
    return f'attachment; filename="{safe_name}"'
