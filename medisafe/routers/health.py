"""
Health check endpoints.

Reports on the storage backend (critical) and the OCR engine and LLM
configuration (non-critical: uploads degrade but sharing keeps working).

Response always returns 200 OK so monitoring can tell the process is up
even when dependencies are degraded.
"""

import asyncio
import logging
import time
from typing import Any

import pytesseract
from fastapi import APIRouter, Request
from pydantic import BaseModel

from .. import __version__
from ..config.settings import get_settings
from ..services.llm_client import get_llm_client
from ..services.ocr import get_text_extractor

logger = logging.getLogger(__name__)

router = APIRouter()


class ServiceHealth(BaseModel):
    """Health status for a single service."""
    status: str  # "healthy", "degraded", "unhealthy"
    healthy: bool
    critical: bool
    message: str | None = None
    latency_ms: float | None = None


class HealthResponse(BaseModel):
    status: str  # "healthy", "degraded", "unhealthy"
    timestamp: int  # Unix epoch seconds
    services: dict[str, ServiceHealth]
    config: dict[str, Any]
    overall_healthy: bool
    critical_services_healthy: bool


async def check_storage_health(request: Request) -> ServiceHealth:
    """Ping MongoDB, or report the in-memory backend as healthy."""
    start = time.time()
    if get_settings().STORAGE_BACKEND == "memory":
        return ServiceHealth(status="healthy", healthy=True, critical=True, message="in-memory backend")

    try:
        db = getattr(request.app.state, "db", None)
        if db is None:
            return ServiceHealth(
                status="unhealthy",
                healthy=False,
                critical=True,
                message="MongoDB client not initialized",
            )

        await db.command("ping")
        latency_ms = (time.time() - start) * 1000
        return ServiceHealth(status="healthy", healthy=True, critical=True, latency_ms=round(latency_ms, 2))
    except Exception as e:
        latency_ms = (time.time() - start) * 1000
        logger.warning(f"MongoDB health check failed: {e}")
        return ServiceHealth(
            status="unhealthy",
            healthy=False,
            critical=True,
            message=str(e),
            latency_ms=round(latency_ms, 2),
        )


async def check_ocr_health() -> ServiceHealth:
    """Tesseract binary reachable, using the configured TESSERACT_CMD."""
    try:
        get_text_extractor()
        version = await asyncio.to_thread(pytesseract.get_tesseract_version)
        return ServiceHealth(status="healthy", healthy=True, critical=False, message=f"tesseract {version}")
    except Exception as e:
        logger.warning(f"Tesseract health check failed: {e}")
        return ServiceHealth(status="unhealthy", healthy=False, critical=False, message=str(e))


async def check_llm_health() -> ServiceHealth:
    """Configuration check only; no request is sent to the provider."""
    if await get_llm_client().is_configured():
        return ServiceHealth(status="healthy", healthy=True, critical=False)
    return ServiceHealth(status="unhealthy", healthy=False, critical=False, message="LLM_MODEL not set")


def get_config_info() -> dict[str, Any]:
    """Get non-sensitive configuration information."""
    settings = get_settings()
    return {
        "environment": settings.ENV_NAME,
        "version": __version__,
        "debug": settings.DEBUG,
        "storage_backend": settings.STORAGE_BACKEND,
        "llm_model": settings.LLM_MODEL,
    }


def calculate_overall_status(services: dict[str, ServiceHealth]) -> tuple[str, bool, bool]:
    """
    Calculate overall health status from individual services.

    Returns:
        Tuple of (status, overall_healthy, critical_services_healthy)
    """
    all_healthy = all(s.healthy for s in services.values())
    critical_healthy = all(s.healthy for s in services.values() if s.critical)

    if all_healthy:
        status = "healthy"
    elif critical_healthy:
        status = "degraded"
    else:
        status = "unhealthy"

    return status, all_healthy, critical_healthy


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Health of the service and its dependencies."""
    storage_health, ocr_health, llm_health = await asyncio.gather(
        check_storage_health(request),
        check_ocr_health(),
        check_llm_health(),
    )

    services = {
        "storage": storage_health,
        "ocr": ocr_health,
        "llm": llm_health,
    }
    status, overall_healthy, critical_healthy = calculate_overall_status(services)

    return HealthResponse(
        status=status,
        timestamp=int(time.time()),
        services=services,
        config=get_config_info(),
        overall_healthy=overall_healthy,
        critical_services_healthy=critical_healthy,
    )
