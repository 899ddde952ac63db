"""Solar Monitor API - FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

import aiohttp
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from solar_monitor.api.endpoints import installations, proxy, readings, telemetry
from solar_monitor.core.config import (
    API_PREFIX,
    APP_NAME,
    APP_VERSION,
    CORS_ORIGINS,
    LOG_LEVEL,
    SEED_SAMPLE_DATA,
)
from solar_monitor.core.storage import MemStorage
from solar_monitor.services.ingestion import ConnectionManager, TelemetryIngestionService
from solar_monitor.services.proxy import ExternalProxyService
from solar_monitor.services.sample_data import SAMPLE_INSTALLATIONS

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(storage: MemStorage | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        storage: Store to serve from. When omitted, the lifespan creates
            one at startup (seeded if SEED_SAMPLE_DATA is set) and clears it
            at shutdown; an injected store is left as it is.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_storage = storage is None
        if owns_storage:
            app.state.storage = MemStorage(seed=SAMPLE_INSTALLATIONS if SEED_SAMPLE_DATA else None)
        else:
            app.state.storage = storage

        app.state.connections = ConnectionManager()
        app.state.ingestion = TelemetryIngestionService(app.state.storage, app.state.connections)

        session = aiohttp.ClientSession()
        app.state.proxy = ExternalProxyService(session)
        logger.info(f"{APP_NAME} {APP_VERSION} started")

        try:
            yield
        finally:
            await app.state.connections.close()
            await session.close()
            if owns_storage:
                app.state.storage.clear()
            logger.info(f"{APP_NAME} stopped")

    app = FastAPI(
        title=APP_NAME,
        version=APP_VERSION,
        description="Backend API for the solar installation dashboard - device telemetry and map data",
        lifespan=lifespan,
    )

    # CORS middleware - allow all origins for development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(
        installations.router,
        prefix=f"{API_PREFIX}/installations",
        tags=["Installations"],
    )
    app.include_router(
        readings.router,
        prefix=f"{API_PREFIX}/readings",
        tags=["Readings"],
    )
    app.include_router(
        proxy.router,
        prefix=API_PREFIX,
        tags=["External data"],
    )
    app.include_router(telemetry.router, tags=["Telemetry"])

    @app.get("/")
    def root():
        """Health check endpoint."""
        return {"status": "Solar Monitor Server Running"}

    @app.get("/health")
    def health_check(request: Request):
        """Detailed health check including store and connection counts."""
        state = request.app.state
        return {
            "status": "healthy",
            "version": APP_VERSION,
            "installations": state.storage.installation_count(),
            "readings": state.storage.reading_count(),
            "connections": state.connections.active_count,
        }

    return app


app = create_app()
