"""
Task API package.

FastAPI service exposing CRUD endpoints for tasks backed by either an
in-memory store or SQLite. The ASGI application lives in `task_api.main`.
"""

__version__ = "0.1.0"
