"""
Settings for the background removal service.

Values come from the environment (or .env). Each backend (remove.bg, R2,
Snowflake) has a mock mode so the API can run without any of them.
"""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
