"""
FastAPI Application Entry Point.

Run with: uvicorn eshop.backend.main:app
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eshop.backend.api import health
from eshop.backend.api.v1 import router as api_v1_router
from eshop.backend.core.concurrency import shutdown_pools
from eshop.backend.core.config import get_app_config
from eshop.backend.core.database import dispose_engine
from eshop.backend.core.exception_handlers import register_exception_handlers
from eshop.backend.core.logging import get_logger, setup_logging
from eshop.backend.core.middleware import RequestContextMiddleware
from eshop.backend.core.resilience import reset_circuit_breakers

logger = get_logger(__name__)

_app: FastAPI | None = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    app_config = get_app_config()
    setup_logging()

    if app_config.features.security_startup_checks_enabled:
        from eshop.backend.gateway.security.startup_checks import run_startup_checks

        run_startup_checks()

    logger.info(
        "Application starting",
        extra={
            "app_name": app_config.application.name,
            "env": app_config.application.environment,
        },
    )
    yield

    logger.info("Application shutting down")
    await dispose_engine()
    await shutdown_pools()
    reset_circuit_breakers()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app_config = get_app_config()
    app_settings = app_config.application
    docs_enabled = app_settings.docs_enabled

    app = FastAPI(
        title=app_settings.name,
        description=app_settings.description,
        version=app_settings.version,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware)

    cors_origins = app_settings.cors.origins
    if cors_origins:
        cors_security = app_config.security.cors
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=cors_security.allow_methods,
            allow_headers=cors_security.allow_headers,
            expose_headers=["X-Request-ID", "X-Response-Time", "Content-Disposition"],
        )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(api_v1_router, prefix=f"{app_settings.api_prefix}/v1")

    return app


def get_app() -> FastAPI:
    """
    Get the application instance, creating it on first call.

    Importing this module never reads configuration; only the first access
    to `app` does.
    """
    global _app
    if _app is None:
        _app = create_app()
    return _app


# For uvicorn: `uvicorn eshop.backend.main:app`
def __getattr__(name: str) -> FastAPI:
    if name == "app":
        return get_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
