"""
localdb_hosting.api.app

FastAPI app factory for the application host.

Responsibilities:
- Build the FastAPI application and register routers.
- Start the application model on startup and stop it on shutdown.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from localdb_hosting import __version__
from localdb_hosting.api.routers.health import router as health_router
from localdb_hosting.api.routers.resources import router as resources_router
from localdb_hosting.hosting.application import DistributedApplication
from localdb_hosting.observability.logging import configure_logging, get_logger
from localdb_hosting.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings, application: DistributedApplication) -> FastAPI:
    configure_logging(
        service_name=settings.service_name, level=settings.log_level, fmt=settings.log_format
    )

    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        await application.start()
        try:
            yield
        finally:
            await application.stop()
            log.info("shutdown")

    app = FastAPI(
        title="LocalDB Application Host",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=_lifespan,
    )
    app.state.application = application

    app.include_router(health_router, tags=["health"])
    app.include_router(resources_router)
    return app


# --- Module Notes -----------------------------------------------------------
# App composition only; resource wiring happens before `create_app` is called
# (see `localdb_hosting.manifest.apply_manifest`).
