"""
remove.bg API client wrapper.

This module provides a thin wrapper around the remove.bg HTTP API that:
1. Implements our BackgroundRemovalClient protocol
2. Handles API-specific details (multipart field names, auth header)
3. Provides consistent error handling
4. Enables easy mocking for tests

The wrapper is intentionally thin: one POST, any non-2xx is a failure.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import requests

from ...core.images.errors import BackgroundRemovalError, BackgroundRemovalNotConfigured
from ...core.images.models import ImageUpload
from ...core.images.remover import BackgroundRemovalClient


logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.remove.bg/v1.0/removebg"


@dataclass
class RemoveBgConfig:
    """
    Configuration for the remove.bg client.

    An empty api_key is allowed: the client is still constructed and
    reports BackgroundRemovalNotConfigured when used, so a missing key
    surfaces per request instead of breaking app startup.
    """
    api_key: str = ""
    api_url: str = DEFAULT_API_URL
    timeout_seconds: float = 60.0
    size: str = "auto"

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


class RemoveBgClient:
    """
    BackgroundRemovalClient backed by remove.bg.

    requests is synchronous, so the call runs in a worker thread.
    """

    def __init__(
        self,
        config: RemoveBgConfig,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._config = config
        self._session = session or requests.Session()

    async def remove_background(self, image: ImageUpload) -> bytes:
        if not self._config.is_configured:
            logger.error("remove.bg API key missing; background removal unavailable")
            raise BackgroundRemovalNotConfigured("Background removal service not configured")

        logger.info(
            "Calling remove.bg",
            extra={"image_filename": image.filename, "size_bytes": image.size}
        )

        try:
            response = await asyncio.to_thread(self._post, image)
        except requests.RequestException as e:
            logger.error("remove.bg request failed", extra={"error": str(e)})
            raise BackgroundRemovalError(f"remove.bg request failed: {e}") from e

        if not response.ok:
            logger.error(
                "Remove.bg API error",
                extra={
                    "status": response.status_code,
                    "reason": response.reason,
                    "details": response.text,
                }
            )
            raise BackgroundRemovalError(
                f"Remove.bg API error: {response.status_code} {response.reason}"
            )

        logger.debug(
            "remove.bg succeeded",
            extra={"image_filename": image.filename, "result_bytes": len(response.content)}
        )

        return response.content

    def _post(self, image: ImageUpload) -> requests.Response:
        files = {
            "image_file": (image.filename or "image.png", image.data, image.content_type),
        }
        data = {"size": self._config.size}

        return self._session.post(
            self._config.api_url,
            headers={"X-Api-Key": self._config.api_key},
            files=files,
            data=data,
            timeout=self._config.timeout_seconds,
        )


# ---------------------------------------------------------------------------
# Mock Client for Local Development
# ---------------------------------------------------------------------------

class MockBackgroundRemovalClient:
    """
    Passthrough remover for local development.

    Returns the uploaded bytes unchanged, so the full request flow can be
    exercised without an API key or network access. The route still labels
    the result image/png, which is what remove.bg returns; a JPEG upload
    therefore comes back as JPEG bytes under a PNG content type.
    """

    def __init__(self) -> None:
        self.calls: list[ImageUpload] = []
        logger.info("Initialized mock background removal client")

    async def remove_background(self, image: ImageUpload) -> bytes:
        self.calls.append(image)
        return image.data


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_removebg_client(
    config: Optional[RemoveBgConfig] = None,
    mock_mode: bool = False,
) -> BackgroundRemovalClient:
    """
    Create background removal client based on configuration.

    Args:
        config: remove.bg configuration (required if not mock_mode)
        mock_mode: If True, return passthrough client for testing
    """
    if mock_mode:
        return MockBackgroundRemovalClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return RemoveBgClient(config)
