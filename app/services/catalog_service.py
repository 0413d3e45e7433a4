"""
Catalog service implementing the mutation pipeline.

This module provides the business logic layer for catalog operations.
It sits between the API layer and the repository layer, and is the only
producer of change events: every successful write is applied to the
repository, turned into a ChangeEvent and published before the call
returns.
"""

import logging
from typing import List, Optional

from app.events.bus import EventBus
from app.events.dispatcher import SubscriptionDispatcher
from app.models.base import ChangeEvent, ChangeKind, Record
from core.exceptions import RecordNotFoundError
from infrastructure.repositories.record_repository import RecordRepository

logger = logging.getLogger(__name__)

DEFAULT_TOPIC = "catalog.changes"


class CatalogService:
    """
    Service owning the catalog state for the process.

    This service:
    - Applies writes to the repository
    - Publishes exactly one ChangeEvent per successful write
    - Serves pure reads without publishing
    - Hands out change-feed subscriptions through its dispatcher

    Publishing happens after the store is updated and before the result is
    returned, so listeners may see an event before the writer's own
    response is delivered.
    """

    def __init__(
        self,
        repository: RecordRepository,
        event_bus: EventBus,
        topic: str = DEFAULT_TOPIC,
        max_queue_size: Optional[int] = None,
    ) -> None:
        """
        Initialize the catalog service.

        Args:
            repository: The record repository.
            event_bus: Bus that change events are published on.
            topic: Topic for all catalog changes.
            max_queue_size: Per-listener buffer bound; None uses the bus default.
        """
        self._repository = repository
        self._event_bus = event_bus
        self._topic = topic
        self._sequence = 0
        self._dispatcher = SubscriptionDispatcher(event_bus, topic, max_queue_size=max_queue_size)

    @property
    def repository(self) -> RecordRepository:
        return self._repository

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def dispatcher(self) -> SubscriptionDispatcher:
        return self._dispatcher

    @property
    def topic(self) -> str:
        return self._topic

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_record(self, name: str, record_id: int, description: str) -> Record:
        """
        Add a record and announce it.

        Duplicate ids are accepted.

        Returns:
            The added record.
        """
        record = self._repository.insert(
            Record(id=record_id, name=name, description=description)
        )
        self._publish(ChangeKind.ADDED, record)
        logger.info(
            f"Added record {record.id} named '{name}'",
            extra=self._log_context(ChangeKind.ADDED, record.id, "add"),
        )
        return record

    def delete_record(self, record_id: int) -> Record:
        """
        Delete a record and announce it.

        Returns:
            The removed record.

        Raises:
            RecordNotFoundError: If no record has that id.
        """
        try:
            removed = self._repository.remove_by_id(record_id)
        except RecordNotFoundError:
            logger.warning(
                f"Delete failed: record {record_id} not found",
                extra={"record_id": record_id, "operation": "delete"},
            )
            raise

        self._publish(ChangeKind.DELETED, removed)
        logger.info(
            f"Deleted record {record_id}",
            extra=self._log_context(ChangeKind.DELETED, record_id, "delete"),
        )
        return removed

    def update_description(self, record_id: int, description: str) -> Record:
        """
        Change a record's description and announce it.

        Returns:
            The updated record.

        Raises:
            RecordNotFoundError: If no record has that id.
        """
        try:
            updated = self._repository.update_description(record_id, description)
        except RecordNotFoundError:
            logger.warning(
                f"Update failed: record {record_id} not found",
                extra={"record_id": record_id, "operation": "update"},
            )
            raise

        self._publish(ChangeKind.UPDATED, updated)
        logger.info(
            f"Updated description of record {record_id}",
            extra=self._log_context(ChangeKind.UPDATED, record_id, "update"),
        )
        return updated

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_records(self) -> List[Record]:
        """All records in insertion order."""
        return self._repository.list()

    def find_by_id(self, record_id: int) -> Optional[Record]:
        return self._repository.find_by_id(record_id)

    def find_by_name(self, name: str) -> Optional[Record]:
        return self._repository.find_by_name(name)

    # ------------------------------------------------------------------
    # Change feed
    # ------------------------------------------------------------------

    def listen(self):
        """Open a new change-feed subscription. See SubscriptionDispatcher.listen."""
        return self._dispatcher.listen()

    def reset(self) -> None:
        """Drop all records, close every subscription and restart the sequence."""
        self._repository.clear()
        self._event_bus.reset()
        self._sequence = 0
        logger.info("Catalog state reset")

    def _publish(self, kind: ChangeKind, record: Record) -> ChangeEvent:
        self._sequence += 1
        event = ChangeEvent(
            kind=kind,
            record=record,
            topic=self._topic,
            sequence=self._sequence,
        )
        delivered = self._event_bus.publish(self._topic, event)
        logger.debug(
            f"Published {kind.value} for record {record.id} "
            f"(sequence {event.sequence}) to {delivered} listeners",
            extra={
                "record_id": record.id,
                "event_kind": kind.value,
                "topic": self._topic,
                "extra_fields": {"sequence": event.sequence, "listeners": delivered},
            },
        )
        return event

    def _log_context(self, kind: ChangeKind, record_id: int, operation: str) -> dict:
        return {
            "record_id": record_id,
            "event_kind": kind.value,
            "topic": self._topic,
            "operation": operation,
        }
