"""
remove.bg API client wrapper.

Implements the BackgroundRemovalClient protocol from core.images.remover.
"""

from .client import (
    MockBackgroundRemovalClient,
    RemoveBgClient,
    RemoveBgConfig,
    create_removebg_client,
)

__all__ = [
    "MockBackgroundRemovalClient",
    "RemoveBgClient",
    "RemoveBgConfig",
    "create_removebg_client",
]
