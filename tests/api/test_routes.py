"""
HTTP-level tests for the API routes.

Every backend runs in mock mode (in-memory storage and metadata,
passthrough background removal), with dependency overrides where a test
needs a backend to misbehave.
"""

import io
import logging

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from bgremoval.api.dependencies import (
    get_image_repository,
    get_storage_client,
    reset_mock_backends,
)
from bgremoval.config.settings import Settings, get_settings
from bgremoval.main import create_app

from conftest import RIGHT_COLOR, FailingRecordStore, FailingStorage

MB = 1024 * 1024


def mock_settings(**overrides) -> Settings:
    values = {
        "snowflake_mock_mode": True,
        "r2_mock_mode": True,
        "removebg_mock_mode": True,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def app():
    reset_mock_backends()
    application = create_app(mock_settings())
    application.dependency_overrides[get_settings] = lambda: mock_settings()
    yield application
    application.dependency_overrides.clear()
    reset_mock_backends()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def use_settings(app, **overrides) -> None:
    app.dependency_overrides[get_settings] = lambda: mock_settings(**overrides)


def jpeg_file(size: int = 1024, name: str = "photo.jpg"):
    return {"image": (name, b"\xff\xd8\xff" + b"\x00" * (size - 3), "image/jpeg")}


# ---------------------------------------------------------------------------
# Background Removal Tests
# ---------------------------------------------------------------------------

class TestRemoveBgRoute:
    """Tests for GET/POST /removebg."""

    def test_describe_endpoint(self, client):
        response = client.get("/removebg")

        assert response.status_code == 200
        assert response.json() == {
            "message": "RemoveBG API endpoint",
            "methods": ["POST"],
            "description": "Upload an image file to remove its background",
        }

    def test_returns_png_attachment(self, client, png_bytes):
        response = client.post("/removebg", files={"image": ("cat.png", png_bytes, "image/png")})

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.headers["content-disposition"] == 'attachment; filename="removed-bg-cat.png"'
        assert "x-warning" not in response.headers
        assert response.content == png_bytes

    def test_flip_mirrors_result(self, client, png_bytes):
        response = client.post(
            "/removebg",
            files={"image": ("cat.png", png_bytes, "image/png")},
            data={"flip": "true"},
        )

        assert response.status_code == 200
        assert response.headers["content-disposition"] == 'attachment; filename="removed-bg-flipped-cat.png"'
        with Image.open(io.BytesIO(response.content)) as image:
            assert image.getpixel((0, 0)) == RIGHT_COLOR

    def test_succeeds_with_debug_logging(self, client, png_bytes, caplog):
        """Every log call on the removal path must accept its extra fields."""
        caplog.set_level(logging.DEBUG)

        response = client.post(
            "/removebg",
            files={"image": ("cat.png", png_bytes, "image/png")},
            data={"flip": "true"},
        )

        assert response.status_code == 200
        assert "Removing background" in caplog.text

    def test_flip_flag_other_than_true_is_ignored(self, client, png_bytes):
        response = client.post(
            "/removebg",
            files={"image": ("cat.png", png_bytes, "image/png")},
            data={"flip": "yes"},
        )

        assert response.status_code == 200
        assert response.content == png_bytes

    def test_failed_mirror_still_returns_image(self, client):
        """Bytes Pillow can't decode come back unmirrored, not as an error."""
        response = client.post("/removebg", files=jpeg_file(), data={"flip": "true"})

        assert response.status_code == 200
        assert response.headers["content-disposition"] == 'attachment; filename="removed-bg-photo.jpg"'
        assert len(response.content) == 1024

    def test_flip_unavailable_sets_warning(self, app, client, png_bytes):
        use_settings(app, image_flip_enabled=False)

        response = client.post(
            "/removebg",
            files={"image": ("cat.png", png_bytes, "image/png")},
            data={"flip": "true"},
        )

        assert response.status_code == 200
        assert response.headers["x-warning"] == "Flip functionality not available on this platform"
        assert response.content == png_bytes

    def test_missing_file(self, client):
        response = client.post("/removebg")

        assert response.status_code == 400
        assert response.json() == {"error": "No image file provided"}

    def test_non_image(self, client):
        response = client.post(
            "/removebg",
            files={"image": ("notes.txt", b"hello", "text/plain")},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "File must be an image"}

    def test_oversized_image(self, client):
        response = client.post("/removebg", files=jpeg_file(size=11 * MB))

        assert response.status_code == 400
        assert response.json() == {"error": "File size too large. Maximum 10MB allowed."}

    def test_missing_api_key_is_generic_failure(self, app, client, png_bytes):
        use_settings(app, removebg_mock_mode=False, removebg_api_key="")

        response = client.post("/removebg", files={"image": ("cat.png", png_bytes, "image/png")})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to process image"}


# ---------------------------------------------------------------------------
# Upload Tests
# ---------------------------------------------------------------------------

class TestUploadRoute:
    """Tests for POST /upload."""

    def test_upload_returns_record(self, client):
        response = client.post("/upload", files=jpeg_file())

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["filename"] == "photo.jpg"
        assert data["file_size"] == 1024
        assert data["mime_type"] == "image/jpeg"
        assert data["storage_path"].startswith("processed/")
        assert data["public_url"] == f"mock://storage/{data['storage_path']}"
        assert data["id"]
        assert data["created_at"]

    def test_upload_without_file(self, client):
        response = client.post("/upload")

        assert response.status_code == 400
        assert response.json() == {"error": "No image file provided"}

    def test_storage_failure(self, app, client):
        app.dependency_overrides[get_storage_client] = lambda: FailingStorage(fail_put=True)

        response = client.post("/upload", files=jpeg_file())

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to upload image"}

    def test_metadata_failure_removes_object(self, app, client):
        storage = FailingStorage()
        app.dependency_overrides[get_storage_client] = lambda: storage
        app.dependency_overrides[get_image_repository] = lambda: FailingRecordStore(fail_insert=True)

        response = client.post("/upload", files=jpeg_file())

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to save image metadata"}
        assert storage._keys() == []


    def test_url_failure_removes_object(self, app, client):
        storage = FailingStorage(fail_url=True)
        app.dependency_overrides[get_storage_client] = lambda: storage

        response = client.post("/upload", files=jpeg_file())

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to upload image"}
        assert storage._keys() == []


# ---------------------------------------------------------------------------
# Delete Tests
# ---------------------------------------------------------------------------

class TestDeleteRoute:
    """Tests for DELETE /delete/{id}."""

    def test_delete_uploaded_image(self, client):
        image_id = client.post("/upload", files=jpeg_file()).json()["data"]["id"]

        response = client.delete(f"/delete/{image_id}")

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Image deleted successfully"}

        again = client.delete(f"/delete/{image_id}")
        assert again.status_code == 404

    def test_delete_unknown_image(self, client):
        response = client.delete("/delete/does-not-exist")

        assert response.status_code == 404
        assert response.json() == {"error": "Image not found"}

    def test_unreachable_database_is_not_found(self, app, client):
        """Without credentials the connection fails before any query runs."""
        use_settings(app, snowflake_mock_mode=False, snowflake_password="")

        response = client.delete("/delete/abc")

        assert response.status_code == 404
        assert response.json() == {"error": "Image not found"}

    def test_storage_failure_does_not_block_delete(self, app, client):
        storage = FailingStorage()
        app.dependency_overrides[get_storage_client] = lambda: storage
        image_id = client.post("/upload", files=jpeg_file()).json()["data"]["id"]
        storage.fail_remove = True

        response = client.delete(f"/delete/{image_id}")

        assert response.status_code == 200
        assert len(storage.remove_calls) == 1


# ---------------------------------------------------------------------------
# Health Tests
# ---------------------------------------------------------------------------

class TestHealthRoutes:
    """Tests for /health and /health/ready."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["details"]["mock_mode"] == {"snowflake": True, "r2": True, "removebg": True}

    def test_ready_in_mock_mode(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_not_ready_without_api_key(self, app, client):
        use_settings(app, removebg_mock_mode=False, removebg_api_key="")

        response = client.get("/health/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "not_ready"
        configuration = next(c for c in body["checks"] if c["name"] == "configuration")
        assert "REMOVEBG_API_KEY" in configuration["error"]

    def test_unknown_route_uses_error_shape(self, client):
        response = client.get("/nowhere")

        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}
