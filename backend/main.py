"""
Arcade FastAPI application.

Entry point for the preview server.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.config import settings
from backend.routes import editor as editor_routes
from backend.routes import sandbox as sandbox_routes
from backend.routes import toolchain as toolchain_routes
from backend.services.preview_host import preview_host
from engine.pipeline import toolchain

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Handles startup and shutdown logic:
    - Install the toolchain (the Node bridge starts on first use)
    - Stop the bridge process and drop sessions on shutdown
    """
    # Startup
    toolchain.init_toolchain(settings.NODE_BINARY, settings.NODE_BRIDGE_SCRIPT or None)
    logger.info("Toolchain configured (node=%s)", settings.NODE_BINARY)

    yield

    # Shutdown
    await preview_host.close()
    toolchain.shutdown()
    logger.info("Toolchain stopped")


app = FastAPI(
    title="Arcade",
    docs_url=None,
    redoc_url=None,
    lifespan=lifespan,
)

# Register routes
app.include_router(sandbox_routes.router)
app.include_router(editor_routes.router)
app.include_router(toolchain_routes.router)


@app.get("/health")
async def health():
    """Health check endpoint for uptime monitoring."""
    return {
        "status": "ok",
        "sandbox": {"attached": preview_host.transport.attached, "ready": preview_host.transport.ready},
    }
