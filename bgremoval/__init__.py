"""
Background Removal API - upload, cut out and share images.

This package contains the complete application:
- core: Framework-agnostic image handlers
- infrastructure: External service integrations
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
