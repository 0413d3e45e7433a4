"""
API models (DTOs) for request and response serialization.

These are separate from the domain models and handle API-level concerns
like validation, documentation, and serialization.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Request Models


class AddRecordRequest(BaseModel):
    """Request model for adding a record."""

    name: str = Field(..., description="Record name (not required to be unique)")
    id: int = Field(..., description="Caller-supplied record id")
    description: str = Field(..., description="Record description")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Widget",
                "id": 1,
                "description": "basic",
            }
        }
    )


class UpdateDescriptionRequest(BaseModel):
    """Request model for changing a record's description."""

    description: str = Field(..., description="New description")

    model_config = ConfigDict(json_schema_extra={"example": {"description": "v2"}})


class DeleteRecordRequest(BaseModel):
    """Request model for deleting a record (WebSocket action)."""

    id: int


class UpdateRecordRequest(BaseModel):
    """Request model for updating a record (WebSocket action)."""

    id: int
    description: str


class GetRecordRequest(BaseModel):
    """Request model for looking up a record (WebSocket action)."""

    id: Optional[int] = None
    name: Optional[str] = None


# Response Models


class RecordResponse(BaseModel):
    """Response model for a record."""

    id: int
    name: str
    description: str


class RecordListResponse(BaseModel):
    """Response model for listing records."""

    records: List[RecordResponse]
    total: int


class ErrorResponse(BaseModel):
    """Response model for errors."""

    error: str
    detail: Optional[str] = None
    error_type: str


class EventStatsResponse(BaseModel):
    """Response model for event bus statistics."""

    total_published: int
    total_delivered: int
    total_dropped: int
    subscriber_count: int
    topics: Dict[str, int]


class WebSocketStatsResponse(BaseModel):
    """Response model for WebSocket connection statistics."""

    total_connections: int
    pending_by_connection: Dict[str, Any]
