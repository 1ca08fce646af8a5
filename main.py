"""
MediSafe Backend - medical document vault with secure share links
FastAPI application entry point
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from motor.motor_asyncio import AsyncIOMotorClient

from medisafe import __version__
from medisafe.config.settings import get_settings
from medisafe.database import attach_backends, ensure_indexes
from medisafe.middleware import setup_middleware
from medisafe.routers import assistant, documents, health, profile, share
from medisafe.utils.logging import configure_logging

settings = get_settings()

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("MediSafe starting up...")
    logger.info(f"Environment: {settings.ENV_NAME}")

    client = None
    if settings.STORAGE_BACKEND == "mongo":
        logger.info(f"MongoDB: {settings.MONGODB_URI}/{settings.MONGODB_DATABASE}")
        client = AsyncIOMotorClient(settings.MONGODB_URI, tz_aware=True)
        attach_backends(app, settings, client[settings.MONGODB_DATABASE])
        await ensure_indexes(app)
    else:
        logger.warning("Using in-memory storage; data is lost on restart")
        attach_backends(app, settings)

    yield

    if client is not None:
        client.close()
    logger.info("MediSafe shutting down...")


app = FastAPI(
    title="MediSafe API",
    description="Medical document vault with OCR, AI summaries and time-limited sharing",
    version=__version__,
    lifespan=lifespan,
)

# Set up middleware (CORS, request logging, exception handlers)
setup_middleware(app)

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(documents.router)
app.include_router(share.router)
app.include_router(share.public_router)
app.include_router(profile.router)
app.include_router(profile.public_router)
app.include_router(assistant.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "MediSafe API",
        "version": __version__,
        "status": "running",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
