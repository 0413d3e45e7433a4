"""
Script to run the Catalog API server.

This script starts the FastAPI application using uvicorn. The change feed
lives in process memory, so the server always runs a single worker.
"""

import logging

import uvicorn

from app.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    logger.info(f"Starting Catalog API on {settings.HOST}:{settings.PORT}")
    logger.info(f"Change feed: ws://{settings.HOST}:{settings.PORT}/v1/records/ws")
    if settings.ENABLE_DOCS:
        logger.info("API Documentation available at /docs")

    uvicorn.run(
        "app.api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        workers=1,
        log_level=settings.LOG_LEVEL.lower(),
    )
