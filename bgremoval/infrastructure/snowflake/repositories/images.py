"""
Snowflake repository for image metadata.

This module implements the repository pattern for the processed_images
table. The repository:
1. Translates between ImageRecord and database rows
2. Encapsulates all SQL queries
3. Provides a clean interface for the image handlers

The handlers never write SQL directly; they ask the repository for what
they need in domain terms.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol

from ....core.images.models import ImageRecord


logger = logging.getLogger(__name__)


TABLE_NAME = "processed_images"

CREATE_TABLE_SQL = f"""
    CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
        id VARCHAR(36) PRIMARY KEY,
        filename VARCHAR NOT NULL,
        storage_path VARCHAR NOT NULL,
        public_url VARCHAR NOT NULL,
        file_size NUMBER NOT NULL,
        mime_type VARCHAR NOT NULL,
        created_at TIMESTAMP_TZ DEFAULT CURRENT_TIMESTAMP()
    )
"""


class SnowflakeConnection(Protocol):
    """
    Protocol for Snowflake connections.

    Using a protocol means tests can provide a mock without
    importing the actual snowflake-connector-python.
    """

    def cursor(self): ...
    def commit(self) -> None: ...


@dataclass
class SnowflakeConfig:
    """Configuration for Snowflake connection."""
    account: str
    user: str
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    private_key_base64: Optional[str] = None
    database: str = "BGREMOVAL"
    schema: str = "PUBLIC"
    warehouse: str = "COMPUTE_WH"
    role: Optional[str] = None


class ImageRecordNotFoundError(Exception):
    """Raised when a requested image record doesn't exist."""
    pass


class ImageRecordRepository:
    """
    Repository for image metadata persistence.

    Each method corresponds to a step the handlers need:
    - insert: record a freshly uploaded image
    - get: load a record by ID
    - delete: remove a record by ID
    """

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def insert(self, record: ImageRecord) -> ImageRecord:
        """Insert a new row and return the stored record."""
        cursor = self._conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO {TABLE_NAME} (
                    id, filename, storage_path, public_url,
                    file_size, mime_type, created_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s)
            """, (
                record.id,
                record.filename,
                record.storage_path,
                record.public_url,
                record.file_size,
                record.mime_type,
                record.created_at.isoformat(),
            ))
            self._conn.commit()

            logger.debug("Inserted image record", extra={"image_id": record.id})

            return record

        except Exception as e:
            logger.error(
                "Failed to insert image record",
                extra={"image_id": record.id, "error": str(e)}
            )
            raise
        finally:
            cursor.close()

    def get(self, image_id: str) -> ImageRecord:
        """
        Load an image record by ID.

        Raises ImageRecordNotFoundError if no row matches.
        """
        cursor = self._conn.cursor()

        try:
            cursor.execute(f"""
                SELECT
                    id,
                    filename,
                    storage_path,
                    public_url,
                    file_size,
                    mime_type,
                    created_at
                FROM {TABLE_NAME}
                WHERE id = %s
            """, (str(image_id),))

            row = cursor.fetchone()
            if not row:
                raise ImageRecordNotFoundError(f"Image {image_id} not found")

            return self._build_record_from_row(row)

        finally:
            cursor.close()

    def delete(self, image_id: str) -> None:
        """Delete a record by ID. Deleting a missing row is not an error."""
        cursor = self._conn.cursor()

        try:
            cursor.execute(f"""
                DELETE FROM {TABLE_NAME}
                WHERE id = %s
            """, (str(image_id),))
            self._conn.commit()

            logger.debug(
                "Deleted image record",
                extra={"image_id": str(image_id), "rowcount": cursor.rowcount}
            )

        except Exception as e:
            logger.error(
                "Failed to delete image record",
                extra={"image_id": str(image_id), "error": str(e)}
            )
            raise
        finally:
            cursor.close()

    def ping(self) -> bool:
        """Run a trivial query. Used by the readiness check."""
        cursor = self._conn.cursor()

        try:
            cursor.execute("SELECT 1")
            return cursor.fetchone() is not None
        finally:
            cursor.close()

    def create_table(self) -> None:
        """Create the processed_images table if it doesn't exist."""
        cursor = self._conn.cursor()

        try:
            cursor.execute(CREATE_TABLE_SQL)
            self._conn.commit()
            logger.info("Ensured table exists", extra={"table": TABLE_NAME})
        finally:
            cursor.close()

    def _build_record_from_row(self, row: tuple) -> ImageRecord:
        """Translate a SELECT row into an ImageRecord."""
        (
            image_id,
            filename,
            storage_path,
            public_url,
            file_size,
            mime_type,
            created_at,
        ) = row

        return ImageRecord(
            id=str(image_id),
            filename=filename,
            storage_path=storage_path,
            public_url=public_url,
            file_size=int(file_size),
            mime_type=mime_type,
            created_at=self._parse_timestamp(created_at),
        )

    @staticmethod
    def _parse_timestamp(value) -> datetime:
        # The connector returns datetimes; the mock hands back ISO strings
        if isinstance(value, datetime):
            return value
        if value:
            return datetime.fromisoformat(str(value))
        return datetime.now(timezone.utc)
