"""
FastAPI application entry point.
Sets up the upload proxy with logging, metrics and error handling.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from upload_proxy import __version__
from upload_proxy.config import settings
from upload_proxy.api.router import api_router
from upload_proxy.api.errors import register_exception_handlers
from upload_proxy.middleware.metrics_middleware import MetricsMiddleware
from upload_proxy.storage.r2_client import get_r2_client
from upload_proxy.utils.logging import configure_logging
from upload_proxy.utils.metrics_server import start_metrics_server

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.
    - Startup: configure logging, warm the storage client, start metrics server
    - Shutdown: stop the metrics server
    """
    # Configure structured JSON logging
    configure_logging('upload-proxy', settings.log_level)
    logger.info(
        f"Upload proxy {__version__} starting (environment={settings.environment})",
        extra={"event": "startup", "environment": settings.environment},
    )

    if not settings.upload_api_key:
        logger.warning("UPLOAD_API_KEY is not set; every upload will be rejected")
    if not settings.r2_public_url:
        logger.warning("R2_PUBLIC_URL is not set; returned URLs will be relative")

    # Logs a warning once if R2 credentials are missing
    get_r2_client()

    metrics_server = None
    if settings.metrics_port:
        metrics_server = start_metrics_server(settings.metrics_port)

    yield

    if metrics_server is not None:
        metrics_server.shutdown()
        metrics_server.server_close()


# Create FastAPI app
app = FastAPI(
    title="Email Builder Upload Proxy",
    description="Stores editor image uploads in R2 and returns their public URL",
    version=__version__,
    lifespan=lifespan,
    # The upload handler answers on every path, including these
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

register_exception_handlers(app)

# Metrics middleware
app.add_middleware(MetricsMiddleware)

# Include API routes
app.include_router(api_router)
