"""
FastAPI application with REST endpoints for the catalog.

This module provides the main FastAPI application with read and write
endpoints for records. Every successful write is broadcast to change-feed
listeners connected on /v1/records/ws.
"""

import logging

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.api import event_routes, health, websocket_routes
from app.api.dependencies import get_catalog_service
from app.api.models import (
    AddRecordRequest,
    ErrorResponse,
    RecordListResponse,
    RecordResponse,
    UpdateDescriptionRequest,
)
from app.config import settings
from app.logging_config import configure_structured_logging
from app.middleware import RequestIDMiddleware, get_request_id
from app.services.catalog_service import CatalogService
from core.exceptions import RecordNotFoundError, SubscriptionClosedError

configure_structured_logging(
    level=settings.LOG_LEVEL,
    enable_json=settings.LOG_JSON_FORMAT,
)
logger = logging.getLogger(__name__)

# Initialize rate limiter
limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.RATE_LIMIT_ENABLED,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
)

API_VERSION = "1.0.0"
API_V1_PREFIX = "/v1"


app = FastAPI(
    title="Catalog API",
    description="Record catalog with a real-time change feed over WebSocket",
    version=API_VERSION,
    docs_url="/docs" if settings.ENABLE_DOCS else None,
    redoc_url="/redoc" if settings.ENABLE_DOCS else None,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ============================================================
# Middleware Configuration
# ============================================================

if settings.CORS_ENABLED:
    from fastapi.middleware.cors import CORSMiddleware

    origins = settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Response-Time"],
    )
    logger.info(f"CORS enabled with origins: {origins}")

app.add_middleware(RequestIDMiddleware)

# Prometheus metrics: request count, latency histograms, in-progress requests
instrumentator = Instrumentator(
    should_group_status_codes=False,
    should_ignore_untemplated=True,
    excluded_handlers=["/metrics"],
)
instrumentator.instrument(app)
instrumentator.expose(app, endpoint="/metrics", tags=["Metrics"])

v1_router = APIRouter(prefix=API_V1_PREFIX, tags=["records"])


# Exception Handlers


@app.exception_handler(RecordNotFoundError)
async def record_not_found_handler(request: Request, exc: RecordNotFoundError) -> JSONResponse:
    logger.info(
        f"[{get_request_id(request)}] {request.method} {request.url.path}: {exc}",
        extra={"record_id": exc.record_id},
    )
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={
            "error": "Record not found",
            "detail": str(exc),
            "error_type": "RecordNotFoundError",
        },
    )


@app.exception_handler(SubscriptionClosedError)
async def subscription_closed_handler(request: Request, exc: SubscriptionClosedError) -> JSONResponse:
    logger.warning(f"[{get_request_id(request)}] {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_410_GONE,
        content={
            "error": "Subscription closed",
            "detail": str(exc),
            "error_type": "SubscriptionClosedError",
        },
    )


# Lifecycle


@app.on_event("startup")
async def startup_event() -> None:
    """Log configuration summary on startup."""
    logger.info("=" * 60)
    logger.info("Catalog API Starting")
    logger.info("=" * 60)
    logger.info(f"Server: {settings.HOST}:{settings.PORT}")
    logger.info(f"Change feed topic: {settings.CATALOG_TOPIC}")
    if settings.SUBSCRIBER_QUEUE_SIZE:
        logger.info(f"Listener buffer: {settings.SUBSCRIBER_QUEUE_SIZE} events (drop oldest)")
    else:
        logger.info("Listener buffer: unbounded")
    logger.info(f"Rate Limiting: {'Enabled' if settings.RATE_LIMIT_ENABLED else 'Disabled'}")
    logger.info("=" * 60)


@app.on_event("shutdown")
async def shutdown_event() -> None:
    """Release every change-feed listener on shutdown."""
    logger.info("Catalog API Shutting Down")
    service = app.dependency_overrides.get(get_catalog_service, get_catalog_service)()
    service.event_bus.shutdown()
    logger.info("Shutdown complete")


# Record Endpoints


@v1_router.get("/records", response_model=RecordListResponse)
async def list_records(service: CatalogService = Depends(get_catalog_service)) -> RecordListResponse:
    """List all records in insertion order."""
    records = service.list_records()
    return RecordListResponse(
        records=[RecordResponse(**record.model_dump()) for record in records],
        total=len(records),
    )


@v1_router.get(
    "/records/by-name/{name}",
    response_model=RecordResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_record_by_name(name: str, service: CatalogService = Depends(get_catalog_service)) -> RecordResponse:
    """Get the first record with the given name."""
    record = service.find_by_name(name)
    if record is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={
                "error": "Record not found",
                "detail": f"No record named '{name}'",
                "error_type": "RecordNotFoundError",
            },
        )
    return RecordResponse(**record.model_dump())


@v1_router.get(
    "/records/{record_id}",
    response_model=RecordResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_record(record_id: int, service: CatalogService = Depends(get_catalog_service)) -> RecordResponse:
    """Get a record by id."""
    record = service.find_by_id(record_id)
    if record is None:
        raise RecordNotFoundError(record_id)
    return RecordResponse(**record.model_dump())


@v1_router.post(
    "/records",
    response_model=RecordResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(settings.RATE_LIMIT_WRITE)
async def add_record(
    request: Request,
    body: AddRecordRequest,
    service: CatalogService = Depends(get_catalog_service),
) -> RecordResponse:
    """Add a record and broadcast an Added event."""
    record = service.add_record(body.name, body.id, body.description)
    return RecordResponse(**record.model_dump())


@v1_router.delete(
    "/records/{record_id}",
    response_model=RecordResponse,
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit(settings.RATE_LIMIT_WRITE)
async def delete_record(
    request: Request,
    record_id: int,
    service: CatalogService = Depends(get_catalog_service),
) -> RecordResponse:
    """Delete a record and broadcast a Deleted event."""
    record = service.delete_record(record_id)
    return RecordResponse(**record.model_dump())


@v1_router.patch(
    "/records/{record_id}",
    response_model=RecordResponse,
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit(settings.RATE_LIMIT_WRITE)
async def update_record_description(
    request: Request,
    record_id: int,
    body: UpdateDescriptionRequest,
    service: CatalogService = Depends(get_catalog_service),
) -> RecordResponse:
    """Change a record's description and broadcast an Updated event."""
    record = service.update_description(record_id, body.description)
    return RecordResponse(**record.model_dump())


app.include_router(v1_router)
app.include_router(websocket_routes.router)
app.include_router(event_routes.router)
app.include_router(health.router)
