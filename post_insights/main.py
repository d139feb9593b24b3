"""FastAPI application factory.

Creates and configures the FastAPI app:
  - Includes route routers (API, upload)
  - Creates the shared AnalyticsState on startup via lifespan context manager
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from post_insights.config import settings
from post_insights.routes.api import router as api_router
from post_insights.routes.upload import router as upload_router
from post_insights.state import AnalyticsState, JsonFileStorage

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def build_state() -> AnalyticsState:
    """Create the analytics state, backed by a JSON snapshot when configured."""
    if settings.state_file is not None:
        logger.info("Persisting analytics state to %s", settings.state_file)
        return AnalyticsState(storage=JsonFileStorage(settings.state_file))
    logger.info("No STATE_FILE configured. Analytics state is kept in memory only.")
    return AnalyticsState()


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: create the analytics state on startup."""
    logger.info("Starting Post Insights on port %s", settings.app_port)
    if not hasattr(application.state, "analytics"):
        application.state.analytics = build_state()
    logger.info(
        "Upload limits: %d MB per file, %d rows per file, %d files per upload",
        settings.max_upload_size_mb,
        settings.max_rows_per_file,
        settings.max_files_per_upload,
    )
    yield
    logger.info("Shutting down Post Insights.")


def create_app(state: AnalyticsState | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        state: Pre-built analytics state. When omitted, one is created at
            startup from settings.
    """
    application = FastAPI(
        title="Post Insights",
        description="Social media CSV analytics: ingestion, normalization and derived metrics.",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    if state is not None:
        application.state.analytics = state

    application.include_router(api_router)
    application.include_router(upload_router)

    return application


app = create_app()
