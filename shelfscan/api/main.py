"""
ShelfScan API

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from fastapi import FastAPI, Request
from loguru import logger

from shelfscan import __version__
from .schemas import HealthResponse
from .routes import scan, lookup
from .middleware import (
    setup_cors,
    setup_logging,
    setup_exception_handlers,
    LoggingConfig,
    get_cors_config,
)
from .dependencies import (
    get_settings,
    init_services,
    Settings,
)


# =============================================================================
# Application Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Services are created lazily by the container; shutdown closes the
    shared HTTP clients.
    """
    settings = app.state.settings
    logger.info(f"Starting ShelfScan in {settings.environment} mode")
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; /api/scan will fail until it is configured")

    try:
        yield
    finally:
        logger.info("Shutting down ShelfScan...")
        await app.state.services.close()
        logger.info("Shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings. If None, loads from environment.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="ShelfScan",
        description="Bookshelf photo scanning and catalog lookup.",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.services = init_services(settings)

    # ==========================================================================
    # Middleware (order matters - first added = outermost)
    # ==========================================================================

    setup_logging(
        app,
        config=LoggingConfig(enabled=True),
        structured=settings.environment not in ("development", "test"),
        level="DEBUG" if settings.debug else "INFO",
    )

    setup_exception_handlers(app)

    setup_cors(app, config=get_cors_config(settings.environment))

    # ==========================================================================
    # Routers
    # ==========================================================================

    api_prefix = "/api"

    app.include_router(scan.router, prefix=api_prefix)
    app.include_router(lookup.router, prefix=api_prefix)

    # ==========================================================================
    # Root Routes
    # ==========================================================================

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "ShelfScan",
            "version": __version__,
            "status": "running",
            "docs": "/docs" if settings.debug else None,
        }

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health_check(request: Request) -> HealthResponse:
        """
        Health check endpoint.

        Reports whether the vision service is configured.
        """
        components = {
            "vision_api": "configured" if settings.openai_api_key else "not_configured",
            "catalog_api": "configured",
        }
        return HealthResponse(
            status="healthy" if settings.openai_api_key else "degraded",
            version=__version__,
            components=components,
        )

    return app


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()


# =============================================================================
# CLI Entry Point
# =============================================================================

def main():
    """Run the application using uvicorn."""
    import os

    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "shelfscan.api.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
