from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from . import __version__
from .errors import install_error_handlers
from .repositories import TaskStorage, build_storage
from .routers import tasks as tasks_router
from .settings import Settings, get_settings
from .utils import configure_logging

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Liveness probe."},
    {
        "name": "tasks",
        "description": "CRUD operations for tasks with completion filtering and pagination.",
    },
]


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, storage: Optional[TaskStorage] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use; loaded from the environment when omitted.
        storage: Storage handle to serve; built from settings.database_url when omitted.
            The handle lives as long as the application and is closed on shutdown.

    Returns:
        The configured FastAPI application with the storage handle on app.state.storage.
    """
    settings = settings or get_settings()
    storage = storage if storage is not None else build_storage(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Task API starting (backend: %s)", settings.persistence_backend)
        yield
        app.state.storage.close()
        logger.info("Task API stopped")

    app = FastAPI(
        title="Task API",
        description="Task management API with in-memory or SQLite storage.",
        version=__version__,
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.storage = storage

    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_error_handlers(app)

    @app.get("/health", summary="Health Check", tags=["health"], response_class=PlainTextResponse)
    def health_check() -> str:
        """
        Liveness probe. Always returns 200 "OK" without touching storage.
        """
        return "OK"

    app.include_router(tasks_router.router)
    return app


_settings = get_settings()
configure_logging(_settings.log_level)

app = create_app(_settings)


# PUBLIC_INTERFACE
def run() -> None:
    """Serve the application with uvicorn on the configured host and port."""
    settings = app.state.settings
    logger.info("Listening on %s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
