"""
Health check and readiness endpoints.

This module provides:
- Liveness probe (basic API health)
- Readiness probe (change feed still accepting listeners)
"""

import logging
import time
from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.api.dependencies import get_catalog_service
from app.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)

# Track service start time for uptime calculation
SERVICE_START_TIME = time.time()

router = APIRouter(tags=["health"])


class HealthStatus(BaseModel):
    """Health status response model."""

    status: str
    timestamp: datetime
    uptime_seconds: float
    version: str = "1.0.0"


class ReadinessStatus(BaseModel):
    """Readiness status response model."""

    status: str
    timestamp: datetime
    checks: Dict[str, Any]
    ready: bool


@router.get(
    "/health",
    response_model=HealthStatus,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
    description="Returns basic API health status. Used for liveness probes.",
)
async def health() -> HealthStatus:
    """
    Basic health check endpoint (liveness probe).

    Always returns 200 OK if the service is running.
    """
    uptime = time.time() - SERVICE_START_TIME

    return HealthStatus(
        status="healthy",
        timestamp=datetime.utcnow(),
        uptime_seconds=round(uptime, 2),
    )


@router.get(
    "/ready",
    response_model=ReadinessStatus,
    summary="Readiness check",
    description="Returns readiness status with dependency checks. Used for readiness probes.",
)
async def readiness(service: CatalogService = Depends(get_catalog_service)):
    """
    Readiness check endpoint (readiness probe).

    Not ready once the event bus has been shut down, since new listeners
    would be refused. Returns 503 Service Unavailable in that case.
    """
    feed_open = not service.event_bus.is_shut_down

    checks: Dict[str, Any] = {
        "record_store": {
            "status": "ready",
            "healthy": True,
            "records": len(service.repository),
        },
        "change_feed": {
            "status": "ready" if feed_open else "shut_down",
            "healthy": feed_open,
            "topic": service.topic,
            "listeners": service.dispatcher.active_listeners,
        },
    }

    result = ReadinessStatus(
        status="ready" if feed_open else "not_ready",
        timestamp=datetime.utcnow(),
        checks=checks,
        ready=feed_open,
    )

    if not feed_open:
        logger.warning("Readiness check failed: change feed is shut down")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=result.model_dump(mode="json"),
        )
    return result
