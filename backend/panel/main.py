"""Admin Panel Backend Application.

This is the main entry point for the admin panel's media service. The panel
itself (tables, navigation, login, CRUD screens) lives elsewhere; this
service mediates every file upload and deletion between the panel and the
Cloudinary object store.

Modules:
    - uploads: batch ingest and removal endpoints, Cloudinary provider
    - auth: JWT session resolution
    - client: upload orchestrator, preview manager and upload surface used
      by panel front ends
"""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from panel.config import get_config
from panel.uploads.cloudinary_provider import CloudinaryProvider
from panel.uploads.errors import UploadError
from panel.uploads.router import router as uploads_router, upload_error_handler
from panel.uploads.service import UploadService, set_upload_service

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# urllib3/httpx/httpcore log every connection; cloudinary logs each request.
for _noisy in (
    "urllib3",
    "urllib3.connectionpool",
    "httpx",
    "httpcore",
    "cloudinary",
):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    # Apply configured log level to root logger so that
    # `logging.level: "debug"` in panel.settings.yaml activates DEBUG output.
    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    if config.secrets.cloudinary.configured:
        provider = CloudinaryProvider.from_secrets(config.secrets.cloudinary)
        set_upload_service(
            UploadService(provider, compensate_on_failure=config.uploads.compensate_on_failure)
        )
        logger.info(
            "Upload service ready: folder=%s max_size=%d compensate=%s",
            config.uploads.folder,
            config.uploads.max_size_bytes,
            config.uploads.compensate_on_failure,
        )
    else:
        logger.warning(
            "Cloudinary credentials missing from panel.secrets.yaml; "
            "falling back to CLOUDINARY_URL on first upload"
        )

    yield  # Application runs here

    # Shutdown
    logger.info("Application shutdown complete")


# Create FastAPI application with metadata
app = FastAPI(
    title="Admin Panel Media API",
    description="Upload and delete panel media stored in Cloudinary",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_exception_handler(UploadError, upload_error_handler)
app.include_router(uploads_router)


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object indicating the server is running.
    """
    return {"status": "ok"}


if __name__ == "__main__":
    server = get_config().server
    uvicorn.run("panel.main:app", host=server.host, port=server.port, reload=server.reload)
