"""
Core business logic for image uploads and background removal.

This module is framework-agnostic - it doesn't import FastAPI, Snowflake,
boto3 or any infrastructure concerns. Handlers receive their collaborators
through Protocols, so they can be tested against in-memory fakes.
"""
