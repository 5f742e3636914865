"""
FastAPI application entry point for the call-and-transcribe pipeline.
"""

from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from callscribe.api.error_handlers import EXCEPTION_HANDLERS
from callscribe.api.middleware import RequestTracingMiddleware
from callscribe.api.routes_calls import router as calls_router
from callscribe.api.routes_plivo import router as plivo_router
from callscribe.api.routes_system import router as system_router
from callscribe.config import Settings
from callscribe.config import settings as default_settings
from callscribe.container import AppContainer
from callscribe.logging_config import configure_logging

logger = structlog.get_logger(__name__)

# Background transcriptions get this long to finish on shutdown
SHUTDOWN_DRAIN_TIMEOUT = 30.0


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[AppContainer] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings (defaults to the environment)
        container: Pre-built components; built from settings on startup when omitted

    Returns:
        Configured FastAPI app with the container on ``app.state.container``
    """
    settings = settings or (container.settings if container else default_settings)
    configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT)

    app = FastAPI(
        title=settings.APP_NAME,
        description="Places recorded calls and transcribes the recordings, "
        "with circuit breakers and retries around both providers",
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.container = container

    # Request tracing middleware (must be first for request_id in all logs)
    app.add_middleware(RequestTracingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for exc_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exc_class, handler)

    app.include_router(system_router, tags=["system"])
    app.include_router(calls_router, prefix="/calls", tags=["calls"])
    app.include_router(plivo_router, prefix="/plivo", tags=["plivo"])

    @app.on_event("startup")
    async def startup():
        """Application startup - build components unless they were injected."""
        if app.state.container is None:
            app.state.container = AppContainer.build(settings)

        logger.info(
            "Application startup complete",
            version=settings.APP_VERSION,
            environment=settings.ENVIRONMENT,
            app_base_url=settings.APP_BASE_URL,
            storage_backend=settings.STORAGE_BACKEND,
        )

    @app.on_event("shutdown")
    async def shutdown():
        """Application shutdown - drain transcriptions and release connections."""
        logger.info("Application shutdown")
        container: Optional[AppContainer] = app.state.container
        if container is not None:
            await container.aclose(drain_timeout=SHUTDOWN_DRAIN_TIMEOUT)
        logger.info("Application shutdown complete")

    if settings.PROMETHEUS_ENABLED:
        Instrumentator().instrument(app).expose(app)

    @app.get("/")
    async def root():
        """Root endpoint with API documentation links."""
        return {
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/docs",
            "health": "/health",
            "resilience": "/resilience/status",
            "metrics": "/metrics" if settings.PROMETHEUS_ENABLED else None,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "callscribe.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,  # Only for development
    )
