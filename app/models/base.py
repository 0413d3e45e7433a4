"""
Base models for the catalog.

Records are immutable values: the store replaces a record instead of
mutating it, so any Record handed out (or carried by a ChangeEvent) is a
snapshot that later writes cannot change.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class Record(BaseModel):
    """A catalog entry. ``id`` is caller-supplied and not enforced unique."""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "name": "Widget",
                "description": "basic",
            }
        },
    )

    id: int
    name: str
    description: str

    def with_description(self, description: str) -> "Record":
        """Return a copy of this record carrying a new description."""
        return self.model_copy(update={"description": description})


class ChangeKind(str, Enum):
    """Kinds of catalog changes broadcast to listeners."""

    ADDED = "Added"
    DELETED = "Deleted"
    UPDATED = "Updated"


class ChangeEvent(BaseModel):
    """
    Payload describing one successful write.

    Attributes:
        kind: What happened to the record
        record: Snapshot of the record at the moment of mutation (the
            removed record for deletes, the new value for updates)
        topic: Bus topic the event was published on
        sequence: Monotonic publish counter of the owning service, from 1
        timestamp: When the event was constructed (UTC)
    """

    model_config = ConfigDict(frozen=True)

    kind: ChangeKind
    record: Record
    topic: str
    sequence: int = Field(..., ge=1)
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    def to_message(self) -> Dict[str, Any]:
        """Serialize for delivery to a connected listener."""
        message = self.model_dump(mode="json")
        message["type"] = "event"
        return message
