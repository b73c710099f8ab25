"""HTTP layer: FastAPI dependencies, upload helpers and routes."""
