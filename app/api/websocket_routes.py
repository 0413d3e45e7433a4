"""
WebSocket endpoint for the real-time change feed.

Every connection is subscribed to catalog changes on connect and receives
each ChangeEvent as JSON. Clients may also issue catalog operations over
the same socket.
"""

import asyncio
import json
import logging
from typing import Callable, Dict, Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, ValidationError
from starlette.websockets import WebSocketState

from app.api.dependencies import get_catalog_service, get_dispatcher
from app.api.models import (
    AddRecordRequest,
    DeleteRecordRequest,
    GetRecordRequest,
    UpdateRecordRequest,
    WebSocketStatsResponse,
)
from app.events.bus import Subscription
from app.events.dispatcher import SubscriptionDispatcher
from app.logging_config import LogContext
from app.services.catalog_service import CatalogService
from app.websockets.manager import ConnectionManager, get_connection_manager
from core.exceptions import RecordNotFoundError, SubscriptionClosedError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["websocket"])


# Message models
class WSRequest(BaseModel):
    """WebSocket request message."""

    type: str = "request"
    action: str  # add, delete, update, get, list, subscribe
    request_id: str
    data: dict = {}


class WSResponse(BaseModel):
    """WebSocket response message."""

    type: str = "response"
    request_id: str
    success: bool
    data: Optional[dict] = None
    error: Optional[str] = None


@router.websocket("/records/ws")
async def websocket_records_endpoint(
    websocket: WebSocket,
    service: CatalogService = Depends(get_catalog_service),
    dispatcher: SubscriptionDispatcher = Depends(get_dispatcher),
):
    """
    WebSocket endpoint for catalog changes and operations.

    **Supported Actions**:
    - `add`: Add a record (`name`, `id`, `description`)
    - `delete`: Delete a record (`id`)
    - `update`: Change a record's description (`id`, `description`)
    - `get`: Look up a record (`id` or `name`)
    - `list`: List all records
    - `subscribe`: No-op, the connection is subscribed on connect

    **Message Format**:
    ```json
    {
      "type": "request",
      "action": "add",
      "request_id": "unique-id",
      "data": {"name": "Widget", "id": 1, "description": "basic"}
    }
    ```

    **Event Format**:
    ```json
    {
      "type": "event",
      "kind": "Added",
      "record": {"id": 1, "name": "Widget", "description": "basic"},
      "topic": "catalog.changes",
      "sequence": 1,
      "timestamp": "..."
    }
    ```

    The server closes the socket when the change feed ends: 1001 when the
    feed is shut down, 1011 when an event could not be delivered.
    """
    manager = get_connection_manager()

    try:
        connection_id, subscription = await manager.connect(websocket, dispatcher)
    except SubscriptionClosedError as e:
        logger.warning(f"Refusing WebSocket connection: {e}")
        await websocket.close(
            code=status.WS_1001_GOING_AWAY,
            reason="Change feed is shut down",
        )
        return

    await manager.send_message(
        connection_id,
        {
            "type": "system",
            "message": f"Subscribed to {dispatcher.topic}",
            "connection_id": connection_id,
        },
    )

    forwarder = asyncio.create_task(forward_events(manager, connection_id, subscription))
    receiver = asyncio.create_task(receive_requests(websocket, manager, connection_id, service))

    try:
        done, _ = await asyncio.wait({forwarder, receiver}, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            task.result()

        if forwarder in done:
            await close_after_feed_ended(websocket, manager, connection_id)

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: {connection_id}")

    finally:
        await manager.disconnect(connection_id)
        forwarder.cancel()
        receiver.cancel()
        await asyncio.gather(forwarder, receiver, return_exceptions=True)


async def forward_events(
    manager: ConnectionManager,
    connection_id: str,
    subscription: Subscription,
) -> None:
    """Push each change event to the connection until the subscription closes."""
    async for event in subscription:
        sent = await manager.send_message(connection_id, event.to_message())
        if not sent:
            break


async def receive_requests(
    websocket: WebSocket,
    manager: ConnectionManager,
    connection_id: str,
    service: CatalogService,
) -> None:
    """
    Read client frames and answer each request.

    Raises:
        WebSocketDisconnect: When the client goes away.
    """
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))

        raw_message = message.get("text")
        if raw_message is None:
            await manager.send_message(
                connection_id,
                {
                    "type": "error",
                    "error": "Invalid message format",
                    "details": "Binary frames are not supported",
                },
            )
            continue

        try:
            message_data = json.loads(raw_message)
            request = WSRequest(**message_data)
        except (json.JSONDecodeError, TypeError, ValidationError) as e:
            await manager.send_message(
                connection_id,
                {
                    "type": "error",
                    "error": "Invalid message format",
                    "details": str(e),
                },
            )
            continue

        try:
            with LogContext(connection_id=connection_id):
                response = handle_request(request, service)
        except Exception as e:
            logger.error(f"Error handling WebSocket message: {e}", exc_info=True)
            await manager.send_message(
                connection_id,
                {
                    "type": "error",
                    "request_id": request.request_id,
                    "error": str(e),
                },
            )
            continue

        await manager.send_message(connection_id, response.model_dump())


async def close_after_feed_ended(
    websocket: WebSocket,
    manager: ConnectionManager,
    connection_id: str,
) -> None:
    """Close a socket whose change feed stopped while the client was still connected."""
    if (
        websocket.client_state != WebSocketState.CONNECTED
        or websocket.application_state != WebSocketState.CONNECTED
    ):
        return

    if manager.is_connected(connection_id):
        code = status.WS_1001_GOING_AWAY
        reason = "Change feed closed"
    else:
        code = status.WS_1011_INTERNAL_ERROR
        reason = "Change event delivery failed"

    logger.info(f"Closing WebSocket {connection_id}: {reason}", extra={"connection_id": connection_id})
    await websocket.close(code=code, reason=reason)


def handle_request(request: WSRequest, service: CatalogService) -> WSResponse:
    """
    Handle a WebSocket request and return response.

    Args:
        request: Validated WebSocket request
        service: Catalog service instance

    Returns:
        WebSocket response
    """
    handler = _HANDLERS.get(request.action)
    if handler is None:
        return WSResponse(
            request_id=request.request_id,
            success=False,
            error=f"Unknown action: {request.action}",
        )

    try:
        data = handler(request.data, service)
    except ValidationError as e:
        return WSResponse(
            request_id=request.request_id,
            success=False,
            error=f"Invalid {request.action} request: {e.error_count()} validation errors",
        )
    except RecordNotFoundError as e:
        return WSResponse(request_id=request.request_id, success=False, error=str(e))

    return WSResponse(request_id=request.request_id, success=True, data=data)


def handle_add(data: dict, service: CatalogService) -> dict:
    params = AddRecordRequest(**data)
    record = service.add_record(params.name, params.id, params.description)
    return {"record": record.model_dump()}


def handle_delete(data: dict, service: CatalogService) -> dict:
    params = DeleteRecordRequest(**data)
    record = service.delete_record(params.id)
    return {"record": record.model_dump()}


def handle_update(data: dict, service: CatalogService) -> dict:
    params = UpdateRecordRequest(**data)
    record = service.update_description(params.id, params.description)
    return {"record": record.model_dump()}


def handle_get(data: dict, service: CatalogService) -> dict:
    params = GetRecordRequest(**data)
    if params.id is not None:
        record = service.find_by_id(params.id)
    elif params.name is not None:
        record = service.find_by_name(params.name)
    else:
        record = None
    return {"record": record.model_dump() if record else None}


def handle_list(data: dict, service: CatalogService) -> dict:
    records = service.list_records()
    return {"records": [record.model_dump() for record in records], "total": len(records)}


def handle_subscribe(data: dict, service: CatalogService) -> dict:
    return {"message": f"Already subscribed to {service.topic}"}


_HANDLERS: Dict[str, Callable[[dict, CatalogService], dict]] = {
    "add": handle_add,
    "delete": handle_delete,
    "update": handle_update,
    "get": handle_get,
    "list": handle_list,
    "subscribe": handle_subscribe,
}


@router.get("/websockets/stats", response_model=WebSocketStatsResponse)
async def websocket_stats() -> WebSocketStatsResponse:
    """
    Get WebSocket connection statistics.

    Returns statistics about active WebSocket connections.
    """
    manager = get_connection_manager()
    return WebSocketStatsResponse(**manager.get_stats())
