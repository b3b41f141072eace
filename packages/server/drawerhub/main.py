"""
DrawerHub API Server

Entry point for the FastAPI application.
"""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from drawerhub.api.error_handlers import register_error_handlers
from drawerhub.api.v1 import router as api_v1_router
from drawerhub.core.config import Settings, get_settings
from drawerhub.core.database import Database
from drawerhub.core.logging_config import configure_logging
from drawerhub.core.middleware import RequestContextMiddleware, SecurityHeadersMiddleware

log = structlog.get_logger()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="DrawerHub",
        description="Shared drawers with invitations, join requests and roles.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        debug=settings.debug,
    )
    app.state.settings = settings
    app.state.db = Database(
        settings.database_url,
        echo=settings.debug,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )

    # Middleware (last added is outermost)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )
    app.add_middleware(RequestContextMiddleware)

    register_error_handlers(app)
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.on_event("startup")
    async def on_startup():
        log.info("app.starting", debug=settings.debug)

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("app.stopping")
        await app.state.db.dispose()

    return app


app = create_app()


def serve() -> None:
    """Run the API with uvicorn using the configured host and port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "drawerhub.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
