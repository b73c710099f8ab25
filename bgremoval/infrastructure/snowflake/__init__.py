"""
Snowflake persistence for image metadata.

Includes mock mode with an in-memory connection for local development.
"""

from .client import (
    MockSnowflakeConnection,
    SnowflakeConnectionError,
    create_snowflake_connection,
)
from .repositories import ImageRecordRepository, SnowflakeConfig

__all__ = [
    "ImageRecordRepository",
    "MockSnowflakeConnection",
    "SnowflakeConfig",
    "SnowflakeConnectionError",
    "create_snowflake_connection",
]
