"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- removebg: remove.bg background removal API
- imaging: Pillow image transforms
- snowflake: Metadata persistence
- storage: Object storage (R2/S3)

These wrappers translate between external formats and our domain models.
"""
