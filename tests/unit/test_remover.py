"""
Unit tests for the background removal handler.

The removal service and the mirror capability are fakes, so we can check
which calls happen (and which don't) for every branch.
"""

import asyncio
import logging

import pytest

from bgremoval.core.images.errors import (
    BackgroundRemovalError,
    BackgroundRemovalNotConfigured,
    ImageTransformUnavailable,
    ImageValidationError,
)
from bgremoval.core.images.models import ImageUpload
from bgremoval.core.images.remover import FLIP_UNAVAILABLE_WARNING, BackgroundRemover

from conftest import FakeRemovalClient, FakeTransformer

MB = 1024 * 1024


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def client() -> FakeRemovalClient:
    return FakeRemovalClient(result=b"cutout")


@pytest.fixture
def transformer() -> FakeTransformer:
    return FakeTransformer()


# ---------------------------------------------------------------------------
# Validation Tests
# ---------------------------------------------------------------------------

class TestValidation:
    """Invalid uploads are rejected before the remote service is called."""

    def test_missing_file(self, client, transformer):
        remover = BackgroundRemover(client, transformer)

        with pytest.raises(ImageValidationError, match="No image file provided"):
            run(remover.remove_background(None))

        assert client.calls == []

    def test_non_image_type(self, client, transformer):
        remover = BackgroundRemover(client, transformer)
        upload = ImageUpload(filename="notes.txt", content_type="text/plain", data=b"hello")

        with pytest.raises(ImageValidationError, match="File must be an image"):
            run(remover.remove_background(upload))

        assert client.calls == []

    def test_oversized_image(self, client, transformer):
        """An 11 MiB JPEG exceeds the 10 MiB limit."""
        remover = BackgroundRemover(client, transformer)
        upload = ImageUpload(filename="big.jpg", content_type="image/jpeg", data=b"\x00" * (11 * MB))

        with pytest.raises(ImageValidationError) as excinfo:
            run(remover.remove_background(upload))

        assert str(excinfo.value) == "File size too large. Maximum 10MB allowed."
        assert client.calls == []

    def test_exactly_at_limit_is_accepted(self, client, transformer):
        remover = BackgroundRemover(client, transformer)
        upload = ImageUpload(filename="edge.jpg", content_type="image/jpeg", data=b"\x00" * (10 * MB))

        run(remover.remove_background(upload))

        assert len(client.calls) == 1

    def test_limit_is_configurable(self, client, transformer):
        remover = BackgroundRemover(client, transformer, max_size_bytes=2 * MB)
        upload = ImageUpload(filename="a.png", content_type="image/png", data=b"\x00" * (3 * MB))

        with pytest.raises(ImageValidationError, match="Maximum 2MB allowed"):
            run(remover.remove_background(upload))


# ---------------------------------------------------------------------------
# Removal Tests
# ---------------------------------------------------------------------------

class TestRemoval:
    """Tests for the removal and mirroring flow."""

    @pytest.fixture
    def upload(self) -> ImageUpload:
        return ImageUpload(filename="cat.png", content_type="image/png", data=b"original")

    def test_returns_service_result(self, client, transformer, upload):
        remover = BackgroundRemover(client, transformer)

        result = run(remover.remove_background(upload))

        assert result.data == b"cutout"
        assert result.filename == "removed-bg-cat.png"
        assert result.media_type == "image/png"
        assert not result.flipped
        assert transformer.calls == 0

    def test_flip_mirrors_result(self, client, transformer, upload):
        remover = BackgroundRemover(client, transformer)

        result = run(remover.remove_background(upload, flip=True))

        assert result.data == b"mirrored"
        assert result.flipped
        assert result.filename == "removed-bg-flipped-cat.png"
        assert result.warning is None

    def test_failed_mirror_returns_unflipped_image(self, client, upload):
        """A throwing transform degrades to the un-mirrored result."""
        transformer = FakeTransformer(error=RuntimeError("corrupt PNG"))
        remover = BackgroundRemover(client, transformer)

        result = run(remover.remove_background(upload, flip=True))

        assert result.data == b"cutout"
        assert not result.flipped
        assert result.filename == "removed-bg-cat.png"

    def test_unavailable_mirror_returns_unflipped_with_warning(self, client, upload):
        transformer = FakeTransformer(available=False)
        remover = BackgroundRemover(client, transformer)

        result = run(remover.remove_background(upload, flip=True))

        assert result.data == b"cutout"
        assert not result.flipped
        assert result.warning == FLIP_UNAVAILABLE_WARNING
        assert transformer.calls == 0

    def test_mirror_reporting_unavailable_gets_warning(self, client, upload):
        transformer = FakeTransformer(error=ImageTransformUnavailable("gone"))
        remover = BackgroundRemover(client, transformer)

        result = run(remover.remove_background(upload, flip=True))

        assert result.warning == FLIP_UNAVAILABLE_WARNING
        assert not result.flipped

    def test_service_failure_propagates(self, transformer, upload):
        client = FakeRemovalClient(error=BackgroundRemovalError("HTTP 402"))
        remover = BackgroundRemover(client, transformer)

        with pytest.raises(BackgroundRemovalError):
            run(remover.remove_background(upload, flip=True))

        assert transformer.calls == 0

    def test_not_configured_is_distinguishable(self, transformer, upload):
        client = FakeRemovalClient(error=BackgroundRemovalNotConfigured("no key"))
        remover = BackgroundRemover(client, transformer)

        with pytest.raises(BackgroundRemovalNotConfigured):
            run(remover.remove_background(upload))


# ---------------------------------------------------------------------------
# Logging Tests
# ---------------------------------------------------------------------------

class TestLogging:
    """Every branch must log cleanly when DEBUG records are actually built."""

    @pytest.fixture(autouse=True)
    def debug_logging(self, caplog):
        caplog.set_level(logging.DEBUG)

    @pytest.fixture
    def upload(self) -> ImageUpload:
        return ImageUpload(filename="cat.png", content_type="image/png", data=b"original")

    @pytest.mark.parametrize(
        "transformer",
        [
            FakeTransformer(),
            FakeTransformer(available=False),
            FakeTransformer(error=ImageTransformUnavailable("gone")),
            FakeTransformer(error=RuntimeError("corrupt PNG")),
        ],
        ids=["mirrored", "unavailable", "became-unavailable", "mirror-error"],
    )
    def test_flip_branches_log_without_error(self, client, transformer, upload, caplog):
        remover = BackgroundRemover(client, transformer)

        result = run(remover.remove_background(upload, flip=True))

        assert result.data in (b"cutout", b"mirrored")
        assert "Removing background" in caplog.text

    def test_log_records_carry_image_name(self, client, transformer, upload, caplog):
        remover = BackgroundRemover(client, transformer)

        run(remover.remove_background(upload))

        record = next(r for r in caplog.records if r.getMessage() == "Removing background")
        assert record.image_filename == "cat.png"
        assert record.filename == "remover.py"
