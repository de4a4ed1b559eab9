"""
VidShare API - FastAPI Backend
Main application entry point with health check and API routing.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from config import configure_logging, settings, validate_security_settings
from database import engine, Base
import models  # noqa: F401
from routers import (
    health,
    users,
    tweets,
    videos,
    playlists,
)
from services.api_response import install_exception_handlers
from services.media_store import MediaStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    configure_logging()
    logger.info("Starting VidShare API...")
    validate_security_settings()
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Database connection failed; refusing to start.")
        raise
    if settings.AUTO_CREATE_DB_SCHEMA:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema verified.")
    app.state.media_store = MediaStore.from_settings()
    yield
    # Shutdown
    await engine.dispose()
    logger.info("Shutting down API...")


app = FastAPI(
    title="VidShare API",
    description="Video sharing backend: users, videos, tweets and playlists",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_exception_handlers(app)

# Include routers
app.include_router(health.router, prefix="/api/v1/healthcheck", tags=["Health"])
app.include_router(users.router, prefix="/api/v1/user", tags=["User"])
app.include_router(tweets.router, prefix="/api/v1/tweet", tags=["Tweet"])
app.include_router(videos.router, prefix="/api/v1/video", tags=["Video"])
app.include_router(playlists.router, prefix="/api/v1/playlist", tags=["Playlist"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "VidShare API",
        "version": "0.1.0",
        "status": "running"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.API_HOST, port=settings.API_PORT)
