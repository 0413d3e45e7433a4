"""
Subscription dispatcher for the catalog change feed.

Binds the generic event bus to the single catalog topic and hands each
listener its own independent subscription.
"""

import logging
from typing import AsyncIterator, Optional

from app.events.bus import EventBus, Subscription
from app.models.base import ChangeEvent

logger = logging.getLogger(__name__)


class SubscriptionDispatcher:
    """
    Produces change-event sequences for listeners of one topic.

    Every listen() call creates a new subscription that sees the events
    published after it was created, in publish order, and nothing else.
    """

    def __init__(self, event_bus: EventBus, topic: str, max_queue_size: Optional[int] = None):
        self._event_bus = event_bus
        self._topic = topic
        self._max_queue_size = max_queue_size

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def active_listeners(self) -> int:
        """Number of live subscriptions on the catalog topic."""
        return self._event_bus.subscriber_count(self._topic)

    def listen(self) -> Subscription:
        """
        Start listening for change events.

        The returned subscription yields ChangeEvent objects until closed.
        Close it (or leave its ``async with`` block) to stop the bus from
        retaining it.
        """
        subscription = self._event_bus.subscribe(self._topic, max_queue_size=self._max_queue_size)
        logger.debug(f"Listener {subscription.id} attached, active: {self.active_listeners}")
        return subscription

    async def stream(self) -> AsyncIterator[ChangeEvent]:
        """Async generator over a fresh subscription, released when the generator closes."""
        subscription = self.listen()
        try:
            async for event in subscription:
                yield event
        finally:
            subscription.close()
