# src/ebb_stage/main.py
"""Main entry point for the Ebb Stage application."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from ebb_stage.api.v1 import removals_router
from ebb_stage.core.settings import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Initialize FastAPI app
app = FastAPI(
    title="Ebb API",
    description="Batched status removal and timeline retraction",
    version=settings.app_version,
)

# Include API routers
app.include_router(removals_router, prefix="/api/v1")


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("ebb_stage.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
