"""
FastAPI application entry point.

This module creates and configures the FastAPI application using an
application factory (create_app), so tests can build fresh instances.

For local development:
    uvicorn blobdrop.main:app --reload

For production:
    gunicorn blobdrop.main:app -w 1 -k uvicorn.workers.UvicornWorker

Each worker process keeps its own feature flag cache.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from . import __version__
from .api.dependencies import close_shared_clients, get_flag_cache, get_flag_source
from .api.routes import files, health, pages
from .config.settings import get_settings
from .core.flags import FlagRefresher

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)

static_dir = Path(__file__).parent / "static"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup: validate configuration, start the feature flag refresher.
    Shutdown: cancel the refresher, close shared SDK clients.
    """
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    logger.info(
        "blobdrop starting",
        extra={
            "version": __version__,
            "storage_backend": settings.storage_backend,
            "container": settings.container_name,
            "feature_flags": settings.flags_enabled,
        }
    )

    # Validate configuration
    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    refresher = None
    flag_source = get_flag_source(settings)
    if flag_source is not None:
        refresher = FlagRefresher(
            cache=get_flag_cache(),
            source=flag_source,
            interval_seconds=settings.flag_refresh_interval_seconds,
        )
        refresher.start()
    else:
        logger.info("APP_CONFIG_ENDPOINT not set, feature flags disabled")

    app.state.flag_refresher = refresher

    yield

    # Shutdown
    if refresher is not None:
        await refresher.stop()
    await close_shared_clients()
    logger.info("blobdrop shutting down")


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=__version__,
        description="""
        Upload files to cloud blob storage.

        - `POST /upload` (form) or `POST /api/v1/files` (JSON) stores a file
        - `GET /gallery` or `GET /api/v1/files` lists stored files

        The storage key comes from STORAGE_ACCOUNT_KEY or Key Vault.
        The gallery can be switched off with the `enableGallery` feature flag.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

    # Include routers
    app.include_router(pages.router, tags=["Pages"])

    app.include_router(
        files.router,
        prefix=f"/api/{settings.api_version}",
        tags=["Files"],
    )

    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """
        Catch-all exception handler.

        Logs the full error server-side but returns a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error."}
        )

    logger.info(
        "FastAPI application created",
        extra={"title": settings.api_title, "version": __version__}
    )

    return app


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "blobdrop.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower(),
    )
