"""
Snowflake database connection management.

Provides connection factory and context manager for Snowflake operations.
Includes mock mode with in-memory storage for local development.

Most code never touches this module directly - it goes through
ImageRecordRepository, which handles the translation between
ImageRecord and database rows.
"""

import base64
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from .repositories.images import TABLE_NAME, SnowflakeConfig, SnowflakeConnection

logger = logging.getLogger(__name__)


class SnowflakeConnectionError(Exception):
    """Raised when Snowflake connection fails."""
    pass


def _to_der(pem_bytes: bytes) -> bytes:
    """Convert a PEM private key into the DER/PKCS8 bytes Snowflake expects."""
    from cryptography.hazmat.backends import default_backend
    from cryptography.hazmat.primitives import serialization

    private_key = serialization.load_pem_private_key(
        pem_bytes,
        password=None,  # No password on the key
        backend=default_backend()
    )

    return private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )


def _load_private_key(config: SnowflakeConfig) -> Optional[bytes]:
    """
    Load the private key for key-pair authentication.

    A file path wins over the base64 variant, which exists for deployments
    where only environment variables are available.
    """
    if config.private_key_path:
        with open(config.private_key_path, 'rb') as key_file:
            return _to_der(key_file.read())

    if config.private_key_base64:
        return _to_der(base64.b64decode(config.private_key_base64))

    return None


@contextmanager
def get_snowflake_connection(config: SnowflakeConfig) -> Generator[SnowflakeConnection, None, None]:
    """
    Provide Snowflake connection with automatic cleanup.

    Supports both password and key-pair authentication:
    - If a private key (path or base64) is set, uses key-pair auth
    - Otherwise, uses password auth

    Usage:
        with get_snowflake_connection(config) as conn:
            cursor = conn.cursor()
            # do work
            conn.commit()
    """
    try:
        import snowflake.connector
    except ImportError:
        raise ImportError(
            "snowflake-connector-python is required. "
            "Install with: pip install snowflake-connector-python"
        )

    connect_params = {
        'account': config.account,
        'user': config.user,
        'database': config.database,
        'schema': config.schema,
        'warehouse': config.warehouse,
        'role': config.role,
        'client_session_keep_alive': True,
    }

    try:
        private_key = _load_private_key(config)
        if private_key:
            logger.info("Using key-pair authentication for Snowflake")
            connect_params['private_key'] = private_key
        elif config.password:
            logger.info("Using password authentication for Snowflake")
            connect_params['password'] = config.password
        else:
            raise SnowflakeConnectionError(
                "Either password or a private key must be provided"
            )

        conn = snowflake.connector.connect(**connect_params)

    except SnowflakeConnectionError:
        raise
    except snowflake.connector.errors.DatabaseError as e:
        logger.error(
            "Snowflake connection failed",
            extra={"error": str(e), "account": config.account}
        )
        raise SnowflakeConnectionError(f"Database connection failed: {e}") from e
    except Exception as e:
        logger.error(
            "Unexpected error connecting to Snowflake",
            extra={"error": str(e)}
        )
        raise SnowflakeConnectionError(f"Connection error: {e}") from e

    logger.debug(
        "Established Snowflake connection",
        extra={
            "account": config.account,
            "database": config.database,
            "schema": config.schema,
        }
    )

    try:
        yield conn
    finally:
        try:
            conn.close()
            logger.debug("Closed Snowflake connection")
        except Exception as e:
            logger.warning(
                "Error closing Snowflake connection",
                extra={"error": str(e)}
            )


# ---------------------------------------------------------------------------
# Mock Connection for Local Development
# ---------------------------------------------------------------------------

class MockSnowflakeCursor:
    """
    Mock Snowflake cursor for testing.

    Implements just enough of the cursor interface to support
    ImageRecordRepository without a real database. Queries are
    recognised by pattern matching, not parsed.
    """

    def __init__(self, storage: dict) -> None:
        self._storage = storage
        self._results: list = []
        self._rowcount: int = 0

    def execute(self, query: str, params: Optional[tuple] = None) -> 'MockSnowflakeCursor':
        """Execute a query against mock storage."""
        logger.debug(
            "Mock cursor execute",
            extra={"query": query[:100], "params": params}
        )

        query_upper = " ".join(query.upper().split())
        table = TABLE_NAME.upper()

        self._results = []
        self._rowcount = 0

        if query_upper.startswith('INSERT INTO') and table in query_upper:
            self._handle_insert(params)

        elif query_upper.startswith('SELECT 1'):
            self._results = [(1,)]

        elif query_upper.startswith('SELECT') and f'FROM {table}' in query_upper:
            self._handle_select(params)

        elif query_upper.startswith('DELETE FROM') and table in query_upper:
            self._handle_delete(params)

        # CREATE TABLE and anything else is a no-op
        return self

    def _handle_insert(self, params: Optional[tuple]) -> None:
        if not params:
            return

        image_id = str(params[0])
        if image_id in self._storage[TABLE_NAME]:
            raise ValueError(f"Duplicate key value: {image_id}")

        self._storage[TABLE_NAME][image_id] = tuple(params)
        self._rowcount = 1

    def _handle_select(self, params: Optional[tuple]) -> None:
        if not params:
            return

        row = self._storage[TABLE_NAME].get(str(params[0]))
        if row:
            self._results = [row]

    def _handle_delete(self, params: Optional[tuple]) -> None:
        if not params:
            return

        if self._storage[TABLE_NAME].pop(str(params[0]), None) is not None:
            self._rowcount = 1

    def fetchone(self):
        """Fetch one row from results."""
        if not self._results:
            return None
        return self._results[0]

    def fetchall(self) -> list:
        """Fetch all rows from results."""
        return self._results

    def close(self) -> None:
        """Close cursor (no-op for mock)."""
        pass

    @property
    def rowcount(self) -> int:
        """Return number of rows affected."""
        return self._rowcount


class MockSnowflakeConnection:
    """
    Mock Snowflake connection for local development.

    Stores rows in memory, keyed by id. Not suitable for production,
    but perfect for:
    - Local development
    - Unit tests
    - CI/CD environments
    """

    def __init__(self) -> None:
        # In-memory storage: {table_name: {id: row_tuple}}
        self._storage: dict[str, dict[str, tuple]] = {
            TABLE_NAME: {},
        }

        logger.info("Initialized mock Snowflake connection (in-memory)")

    def cursor(self) -> MockSnowflakeCursor:
        """Create a mock cursor."""
        return MockSnowflakeCursor(self._storage)

    def commit(self) -> None:
        """Commit transaction (no-op for mock, always auto-commits)."""
        logger.debug("Mock connection commit")

    def rollback(self) -> None:
        """Rollback transaction (no-op for mock)."""
        logger.debug("Mock connection rollback")

    def close(self) -> None:
        """Close connection (no-op for mock)."""
        logger.debug("Mock connection close")

    # Helper methods for testing
    def _row_count(self) -> int:
        """Number of stored image rows (for test assertions)."""
        return len(self._storage[TABLE_NAME])

    def _clear(self) -> None:
        """Clear all mock storage (for test cleanup)."""
        for table in self._storage.values():
            table.clear()


@contextmanager
def get_mock_snowflake_connection() -> Generator[MockSnowflakeConnection, None, None]:
    """Provide a fresh in-memory connection."""
    conn = MockSnowflakeConnection()
    try:
        yield conn
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

@contextmanager
def create_snowflake_connection(
    config: Optional[SnowflakeConfig] = None,
    mock_mode: bool = False,
) -> Generator[SnowflakeConnection, None, None]:
    """
    Create Snowflake connection based on configuration.

    Args:
        config: Snowflake configuration (required if not mock_mode)
        mock_mode: If True, return mock connection for testing

    Yields:
        SnowflakeConnection implementation (real or mock)
    """
    if mock_mode:
        with get_mock_snowflake_connection() as conn:
            yield conn
    else:
        if config is None:
            raise ValueError("config is required when not in mock mode")

        with get_snowflake_connection(config) as conn:
            yield conn
