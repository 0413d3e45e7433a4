"""
WebSocket connection manager for the change feed.

Tracks connected listeners and the change-feed subscription each one holds,
so a disconnect always releases its subscription.
"""

import logging
from typing import Dict, Optional, Tuple
from uuid import uuid4

from fastapi import WebSocket

from app.events.bus import Subscription
from app.events.dispatcher import SubscriptionDispatcher

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Manages WebSocket connections and their subscriptions.

    Features:
    - Connection lifecycle management
    - One change-feed subscription per connection
    - Per-connection message sending
    """

    def __init__(self):
        # Active connections by connection_id
        self._connections: Dict[str, WebSocket] = {}

        # Change-feed subscription held by each connection
        self._subscriptions: Dict[str, Subscription] = {}

        logger.info("ConnectionManager initialized")

    async def connect(
        self, websocket: WebSocket, dispatcher: SubscriptionDispatcher
    ) -> Tuple[str, Subscription]:
        """
        Accept a new WebSocket connection and start listening for changes.

        The subscription is registered before this returns, so every change
        published afterwards reaches the connection. A shut-down feed
        refuses the handshake.

        Args:
            websocket: The WebSocket connection
            dispatcher: Dispatcher for the change feed

        Returns:
            (connection_id, subscription)

        Raises:
            SubscriptionClosedError: If the event bus has been shut down.
        """
        subscription = dispatcher.listen()
        await websocket.accept()

        connection_id = str(uuid4())
        self._connections[connection_id] = websocket
        self._subscriptions[connection_id] = subscription

        logger.info(
            f"WebSocket connected: {connection_id} (topic: {dispatcher.topic}), "
            f"total connections: {len(self._connections)}",
            extra={"connection_id": connection_id, "topic": dispatcher.topic},
        )

        return connection_id, subscription

    async def disconnect(self, connection_id: str):
        """
        Remove a WebSocket connection and release its subscription.

        Args:
            connection_id: Connection to remove
        """
        if connection_id not in self._connections:
            return

        subscription = self._subscriptions.pop(connection_id, None)
        if subscription is not None:
            subscription.close()

        del self._connections[connection_id]

        logger.info(
            f"WebSocket disconnected: {connection_id}, "
            f"remaining connections: {len(self._connections)}",
            extra={"connection_id": connection_id},
        )

    async def send_message(self, connection_id: str, message: dict) -> bool:
        """
        Send a message to a specific connection.

        A failed send drops the connection.

        Returns:
            True if the message was sent.
        """
        websocket = self._connections.get(connection_id)
        if websocket is None:
            logger.warning(f"Cannot send to unknown connection: {connection_id}")
            return False

        try:
            await websocket.send_json(message)
            return True
        except Exception as e:
            logger.error(
                f"Failed to send message to {connection_id}: {e}",
                extra={"connection_id": connection_id},
            )
            await self.disconnect(connection_id)
            return False

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def get_stats(self) -> dict:
        """
        Get connection statistics.

        Returns:
            Statistics dictionary
        """
        return {
            "total_connections": len(self._connections),
            "pending_by_connection": {
                conn_id: subscription.pending
                for conn_id, subscription in self._subscriptions.items()
            },
        }


# Global singleton
_manager: Optional[ConnectionManager] = None


def get_connection_manager() -> ConnectionManager:
    """
    Get or create the global ConnectionManager singleton.

    Returns:
        The connection manager instance
    """
    global _manager
    if _manager is None:
        _manager = ConnectionManager()
    return _manager
