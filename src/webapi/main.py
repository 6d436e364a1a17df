"""FastAPI application for temporary document and image transformations."""

import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .dependencies import get_gateway, get_retention_sweeper, reset_services
from .routes import images, pdf, storage
from .storage.config import StorageConfig

logger = logging.getLogger(__name__)

SERVICE_NAME = "Transient Docs API"
SERVICE_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan: startup and shutdown.

    Startup sequence:
    1. Validate storage configuration
    2. Create the object store gateway
    3. Start the retention sweeper

    Shutdown sequence:
    1. Stop the retention sweeper
    2. Close the gateway and worker threads
    """
    sweeper = None

    try:
        logger.info(f"Starting {SERVICE_NAME}")

        logger.info("Initializing storage configuration")
        StorageConfig.init()
        get_gateway()

        # Sweeper is non-critical: serve requests even if it fails to start
        try:
            sweeper = get_retention_sweeper()
            await sweeper.start()
        except Exception as sweeper_error:
            logger.error(f"Retention sweeper startup failed: {sweeper_error}", exc_info=True)

        logger.info(f"{SERVICE_NAME} startup complete")

        yield

    except Exception as startup_error:
        logger.critical(f"Application startup failed: {startup_error}", exc_info=True)
        raise

    finally:
        logger.info(f"Shutting down {SERVICE_NAME}")

        if sweeper:
            try:
                await asyncio.shield(sweeper.stop())
            except asyncio.CancelledError:
                logger.warning("Retention sweeper shutdown interrupted")
            except Exception as e:
                logger.error(f"Error stopping retention sweeper: {e}", exc_info=True)

        try:
            await asyncio.shield(reset_services())
        except asyncio.CancelledError:
            logger.warning("Service shutdown interrupted")
        except Exception as e:
            logger.error(f"Error closing services: {e}", exc_info=True)


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""

    app = FastAPI(
        title=SERVICE_NAME,
        description="Upload, transform and download images and PDFs as temporary objects",
        version=SERVICE_VERSION,
        lifespan=lifespan
    )

    allowed_origins_str = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173")
    allowed_origins = [origin.strip() for origin in allowed_origins_str.split(",")]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Include routers with /api prefix
    app.include_router(pdf.router, prefix="/api")
    app.include_router(images.router, prefix="/api")
    app.include_router(storage.router, prefix="/api")

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "storage_backend": StorageConfig.backend,
            "retention": StorageConfig.retention_window().to_dict(),
        }

    @app.get("/health")
    async def health_check_root():
        """Health check endpoint (legacy alias of /api/health)."""
        return await health_check()

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
