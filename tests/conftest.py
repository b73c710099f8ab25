"""
Shared fixtures and fakes.

Fakes implement the same Protocols as the real clients, so handlers can be
exercised without network access, R2 or Snowflake.
"""

import io
from typing import Optional

import pytest
from PIL import Image

from bgremoval.core.images.errors import BackgroundRemovalError
from bgremoval.core.images.models import ImageRecord, ImageUpload
from bgremoval.infrastructure.snowflake.client import MockSnowflakeConnection
from bgremoval.infrastructure.snowflake.repositories.images import ImageRecordRepository
from bgremoval.infrastructure.storage.client import MockStorageClient


LEFT_COLOR = (255, 0, 0, 255)
RIGHT_COLOR = (0, 0, 255, 255)


def make_png(width: int = 4, height: int = 2) -> bytes:
    """A small PNG whose left half is red and right half is blue."""
    image = Image.new("RGBA", (width, height), RIGHT_COLOR)
    for x in range(width // 2):
        for y in range(height):
            image.putpixel((x, y), LEFT_COLOR)

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeRemovalClient:
    """Records calls and returns a fixed result (or raises)."""

    def __init__(self, result: bytes = b"", error: Optional[Exception] = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[ImageUpload] = []

    async def remove_background(self, image: ImageUpload) -> bytes:
        self.calls.append(image)
        if self.error:
            raise self.error
        return self.result or image.data


class FakeTransformer:
    """Mirror capability with a controllable outcome."""

    def __init__(
        self,
        available: bool = True,
        result: bytes = b"mirrored",
        error: Optional[Exception] = None,
    ) -> None:
        self._available = available
        self.result = result
        self.error = error
        self.calls = 0

    @property
    def available(self) -> bool:
        return self._available

    async def mirror(self, image_data: bytes) -> bytes:
        self.calls += 1
        if self.error:
            raise self.error
        return self.result


class FailingStorage(MockStorageClient):
    """In-memory storage whose individual operations can be made to fail."""

    def __init__(
        self,
        fail_put: bool = False,
        fail_remove: bool = False,
        fail_url: bool = False,
    ) -> None:
        super().__init__()
        self.fail_put = fail_put
        self.fail_remove = fail_remove
        self.fail_url = fail_url
        self.remove_calls: list[str] = []

    async def put_object(self, storage_path: str, data: bytes, content_type: str) -> None:
        if self.fail_put:
            raise RuntimeError("bucket unavailable")
        await super().put_object(storage_path, data, content_type)

    async def get_public_url(self, storage_path: str) -> str:
        if self.fail_url:
            raise RuntimeError("presign failed")
        return await super().get_public_url(storage_path)

    async def remove_object(self, storage_path: str) -> None:
        self.remove_calls.append(storage_path)
        if self.fail_remove:
            raise RuntimeError("bucket unavailable")
        await super().remove_object(storage_path)


class FailingRecordStore(ImageRecordRepository):
    """Mock-backed repository whose insert or delete can be made to fail."""

    def __init__(self, fail_insert: bool = False, fail_delete: bool = False) -> None:
        self.connection = MockSnowflakeConnection()
        super().__init__(self.connection)
        self.fail_insert = fail_insert
        self.fail_delete = fail_delete

    def insert(self, record: ImageRecord) -> ImageRecord:
        if self.fail_insert:
            raise RuntimeError("warehouse suspended")
        return super().insert(record)

    def delete(self, image_id: str) -> None:
        if self.fail_delete:
            raise RuntimeError("warehouse suspended")
        super().delete(image_id)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def jpeg_upload() -> ImageUpload:
    """A 1 KiB upload declared as JPEG."""
    return ImageUpload(
        filename="photo.jpg",
        content_type="image/jpeg",
        data=b"\xff\xd8\xff" + b"\x00" * 1021,
    )


@pytest.fixture
def storage() -> FailingStorage:
    return FailingStorage()


@pytest.fixture
def records() -> FailingRecordStore:
    return FailingRecordStore()
