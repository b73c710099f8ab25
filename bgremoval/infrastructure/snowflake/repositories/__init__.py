"""
Repository pattern implementations for Snowflake.

Repositories translate between domain models and database representations.
"""

from .images import (
    ImageRecordNotFoundError,
    ImageRecordRepository,
    SnowflakeConfig,
    SnowflakeConnection,
)

__all__ = [
    "ImageRecordNotFoundError",
    "ImageRecordRepository",
    "SnowflakeConfig",
    "SnowflakeConnection",
]
