"""
In-memory repository for catalog records.

Records are kept in insertion order in a plain list. Lookups are linear
scans returning the first match, and ``insert`` does not reject duplicate
ids: with duplicates present, removal and updates act on the first match.

Thread-Safety: none. The repository is driven from a single event loop
and no operation awaits, so each call runs to completion before the next.
"""

import logging
from typing import List, Optional

from app.models.base import Record
from core.exceptions import RecordNotFoundError

logger = logging.getLogger(__name__)


class RecordRepository:
    """
    Ordered, volatile store of Record values.

    Stored records are frozen models, so returning them never exposes
    mutable state; an update swaps in a new value at the same position.
    """

    def __init__(self) -> None:
        self._records: List[Record] = []

    def __len__(self) -> int:
        return len(self._records)

    def list(self) -> List[Record]:
        """Return all records in insertion order."""
        return list(self._records)

    def find_by_name(self, name: str) -> Optional[Record]:
        """Return the first record with ``name``, or None."""
        for record in self._records:
            if record.name == name:
                return record
        return None

    def find_by_id(self, record_id: int) -> Optional[Record]:
        """Return the first record with ``record_id``, or None."""
        index = self._index_of(record_id)
        if index is None:
            return None
        return self._records[index]

    def insert(self, record: Record) -> Record:
        """
        Append a record.

        Duplicate ids are accepted; callers own id uniqueness.
        """
        self._records.append(record)
        logger.debug(f"Inserted record {record.id}, store size: {len(self._records)}")
        return record

    def remove_by_id(self, record_id: int) -> Record:
        """
        Remove the first record with ``record_id``.

        Returns:
            The removed record.

        Raises:
            RecordNotFoundError: If no record has that id.
        """
        index = self._index_of(record_id)
        if index is None:
            raise RecordNotFoundError(record_id)

        removed = self._records.pop(index)
        logger.debug(f"Removed record {record_id}, store size: {len(self._records)}")
        return removed

    def update_description(self, record_id: int, description: str) -> Record:
        """
        Replace the description of the first record with ``record_id``.

        Returns:
            The updated record.

        Raises:
            RecordNotFoundError: If no record has that id.
        """
        index = self._index_of(record_id)
        if index is None:
            raise RecordNotFoundError(record_id)

        updated = self._records[index].with_description(description)
        self._records[index] = updated
        return updated

    def clear(self) -> None:
        """Drop every record."""
        self._records.clear()

    def _index_of(self, record_id: int) -> Optional[int]:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        return None
