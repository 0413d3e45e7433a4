"""
Pytest configuration and shared fixtures.
"""

import pytest

from app.events.bus import EventBus
from app.events.dispatcher import SubscriptionDispatcher
from app.models.base import Record
from app.services.catalog_service import CatalogService
from infrastructure.repositories.record_repository import RecordRepository

TEST_TOPIC = "catalog.changes"


@pytest.fixture
def record_repository() -> RecordRepository:
    """Create an empty RecordRepository for testing."""
    return RecordRepository()


@pytest.fixture
def event_bus() -> EventBus:
    """Provide fresh event bus for each test."""
    return EventBus()


@pytest.fixture
def catalog_service(record_repository: RecordRepository, event_bus: EventBus) -> CatalogService:
    """Create a CatalogService over fresh state."""
    return CatalogService(record_repository, event_bus, topic=TEST_TOPIC)


@pytest.fixture
def dispatcher(catalog_service: CatalogService) -> SubscriptionDispatcher:
    """Dispatcher bound to the test service's topic."""
    return catalog_service.dispatcher


@pytest.fixture
def sample_record() -> Record:
    """Create a sample record for testing."""
    return Record(id=1, name="Widget", description="basic")


@pytest.fixture
def sample_records() -> list:
    """A few records, including a duplicate id and a duplicate name."""
    return [
        Record(id=1, name="Widget", description="basic"),
        Record(id=2, name="Gadget", description="shiny"),
        Record(id=1, name="Widget Pro", description="duplicate id"),
        Record(id=3, name="Gadget", description="duplicate name"),
    ]
