"""
FastAPI dependencies for dependency injection.

The catalog state (records and change-feed registrations) is owned by a
single CatalogService created on first use and shared for the life of the
process. Tests replace it through ``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends

from app.config import settings
from app.events.bus import EventBus, get_event_bus
from app.events.dispatcher import SubscriptionDispatcher
from app.services.catalog_service import CatalogService
from infrastructure.repositories.record_repository import RecordRepository


@lru_cache()
def get_record_repository() -> RecordRepository:
    """
    Get or create the record repository singleton.

    Returns:
        The record repository instance.
    """
    return RecordRepository()


@lru_cache()
def get_catalog_service() -> CatalogService:
    """
    Get or create the catalog service singleton.

    Returns:
        The catalog service instance.
    """
    return CatalogService(
        repository=get_record_repository(),
        event_bus=get_event_bus(),
        topic=settings.CATALOG_TOPIC,
    )


def get_dispatcher(
    service: CatalogService = Depends(get_catalog_service),
) -> SubscriptionDispatcher:
    """Change-feed dispatcher of the catalog service."""
    return service.dispatcher


def get_service_event_bus(
    service: CatalogService = Depends(get_catalog_service),
) -> EventBus:
    """Event bus the catalog service publishes on."""
    return service.event_bus


def reset_catalog_state() -> None:
    """Clear records and close all subscriptions of the shared service."""
    get_catalog_service().reset()
