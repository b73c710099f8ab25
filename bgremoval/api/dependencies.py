"""
FastAPI dependency injection.

Dependencies provide instances of handlers, clients, and configuration
to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be overridden in tests via app.dependency_overrides
- Configuration is read once, in one place, and passed in explicitly

Each dependency is a function that FastAPI calls when needed.
"""

import logging
from contextlib import ExitStack, contextmanager
from typing import Annotated, Generator

from fastapi import Depends, HTTPException, status

from ..config.settings import Settings, get_settings
from ..core.images.library import ImageLibrary, ImageRecordStore, ObjectStorage
from ..core.images.remover import BackgroundRemovalClient, BackgroundRemover, ImageTransformer
from ..infrastructure.imaging.transformer import create_image_transformer
from ..infrastructure.removebg.client import RemoveBgConfig, create_removebg_client
from ..infrastructure.snowflake.client import (
    MockSnowflakeConnection,
    SnowflakeConnectionError,
    create_snowflake_connection,
)
from ..infrastructure.snowflake.repositories.images import (
    ImageRecordRepository,
    SnowflakeConfig,
)
from ..infrastructure.storage.client import StorageConfig, create_storage_client

logger = logging.getLogger(__name__)

# Global mock instances (shared across requests so data persists in mock mode)
_mock_storage_client = None
_mock_snowflake_connection = None


def reset_mock_backends() -> None:
    """Drop the shared mock instances (for test isolation)."""
    global _mock_storage_client, _mock_snowflake_connection
    _mock_storage_client = None
    _mock_snowflake_connection = None


# ---------------------------------------------------------------------------
# Infrastructure Dependencies
# ---------------------------------------------------------------------------

def snowflake_config_from_settings(settings: Settings) -> SnowflakeConfig:
    return SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        private_key_base64=settings.snowflake_private_key_base64,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )


def get_image_repository(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[ImageRecordRepository, None, None]:
    """
    Provide ImageRecordRepository with database connection.

    This is a generator function because we need to manage the
    connection lifecycle: open, yield the repository, close after the
    request.
    """
    with open_image_repository(settings) as repo:
        yield repo


def get_lookup_repository(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[ImageRecordRepository, None, None]:
    """
    Provide a repository for routes that look an image up by ID.

    If the metadata store can't be reached, the image can't be found
    either: the request ends as a 404 instead of an unhandled error.
    """
    with ExitStack() as stack:
        try:
            repository = stack.enter_context(open_image_repository(settings))
        except SnowflakeConnectionError as e:
            logger.error("Image lookup failed: no database connection", extra={"error": str(e)})
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found") from e

        yield repository


@contextmanager
def open_image_repository(settings: Settings) -> Generator[ImageRecordRepository, None, None]:
    """
    Open a repository outside of request injection (readiness checks, scripts).

    In mock mode, we reuse the same connection across requests
    so that data persists during the testing session.
    """
    global _mock_snowflake_connection

    if settings.snowflake_mock_mode:
        if _mock_snowflake_connection is None:
            _mock_snowflake_connection = MockSnowflakeConnection()
            logger.info("Created shared mock Snowflake connection")

        yield ImageRecordRepository(_mock_snowflake_connection)
    else:
        config = snowflake_config_from_settings(settings)

        with create_snowflake_connection(config=config) as conn:
            logger.debug("Created ImageRecordRepository with Snowflake connection")
            yield ImageRecordRepository(conn)


def get_storage_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> ObjectStorage:
    """
    Provide storage client for image uploads and deletes.

    Returns either R2 client or mock client based on settings.
    """
    global _mock_storage_client

    if settings.r2_mock_mode:
        if _mock_storage_client is None:
            _mock_storage_client = create_storage_client(mock_mode=True)
            logger.info("Created shared mock storage client")
        return _mock_storage_client

    config = StorageConfig(
        access_key_id=settings.r2_access_key_id,
        secret_access_key=settings.r2_secret_access_key,
        bucket_name=settings.r2_bucket_name,
        endpoint_url=settings.r2_endpoint,
        public_base_url=settings.r2_public_url,
    )
    return create_storage_client(config=config)


def get_removal_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> BackgroundRemovalClient:
    """Provide the background removal client (remove.bg or passthrough mock)."""
    if settings.removebg_mock_mode:
        return create_removebg_client(mock_mode=True)

    config = RemoveBgConfig(
        api_key=settings.removebg_api_key,
        api_url=settings.removebg_api_url,
        timeout_seconds=settings.removebg_timeout_seconds,
    )
    return create_removebg_client(config=config)


def get_image_transformer(
    settings: Annotated[Settings, Depends(get_settings)],
) -> ImageTransformer:
    """Provide the mirror capability chosen by IMAGE_FLIP_ENABLED."""
    return create_image_transformer(enabled=settings.image_flip_enabled)


# ---------------------------------------------------------------------------
# Handler Dependencies
# ---------------------------------------------------------------------------

def get_image_library(
    settings: Annotated[Settings, Depends(get_settings)],
    storage: Annotated[ObjectStorage, Depends(get_storage_client)],
    records: Annotated[ImageRecordStore, Depends(get_image_repository)],
) -> ImageLibrary:
    """Provide the upload/delete handlers wired to storage and metadata."""
    return ImageLibrary(
        storage=storage,
        records=records,
        path_prefix=settings.storage_path_prefix,
    )


def get_deletion_library(
    settings: Annotated[Settings, Depends(get_settings)],
    storage: Annotated[ObjectStorage, Depends(get_storage_client)],
    records: Annotated[ImageRecordStore, Depends(get_lookup_repository)],
) -> ImageLibrary:
    """Provide the image library for deletes, where lookup failures are 404s."""
    return ImageLibrary(
        storage=storage,
        records=records,
        path_prefix=settings.storage_path_prefix,
    )


def get_background_remover(
    settings: Annotated[Settings, Depends(get_settings)],
    client: Annotated[BackgroundRemovalClient, Depends(get_removal_client)],
    transformer: Annotated[ImageTransformer, Depends(get_image_transformer)],
) -> BackgroundRemover:
    """Provide the background removal handler."""
    return BackgroundRemover(
        client=client,
        transformer=transformer,
        max_size_bytes=settings.max_image_size_bytes,
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
ImageLibraryDep = Annotated[ImageLibrary, Depends(get_image_library)]
DeletionLibraryDep = Annotated[ImageLibrary, Depends(get_deletion_library)]
BackgroundRemoverDep = Annotated[BackgroundRemover, Depends(get_background_remover)]
ImageRepositoryDep = Annotated[ImageRecordRepository, Depends(get_image_repository)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
