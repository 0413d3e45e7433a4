"""
Topic-keyed event bus for real-time change notifications.

Producers publish a payload under a topic name; every subscription
registered on that topic receives it. Producers never see who is
listening.

Each subscription owns its own asyncio.Queue, so publishing is a
synchronous, non-suspending fan-out: a slow consumer only grows its own
buffer and never delays delivery to the others. Consumers suspend only
while waiting for their next event.

Thread-Safety: Uses asyncio queues, safe for use within a single event loop.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional
from uuid import uuid4

from core.exceptions import SubscriptionClosedError

logger = logging.getLogger(__name__)

# Wakes a consumer blocked on a subscription that has been closed
_CLOSED = object()


class Subscription:
    """
    A live registration on one topic.

    Iterate with ``async for`` or await ``get()``. Use as an async context
    manager to unsubscribe automatically:

        ```python
        async with bus.subscribe("catalog.changes") as subscription:
            async for payload in subscription:
                ...
        ```

    Only events published after the subscription was created are delivered.
    """

    def __init__(self, bus: "EventBus", topic: str, max_queue_size: int = 0):
        self.id = str(uuid4())
        self.topic = topic
        self._bus = bus
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue_size)
        self._closed = False
        self.delivered = 0
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Events buffered and not yet consumed."""
        if self._closed:
            return 0
        return self._queue.qsize()

    def _deliver(self, payload: Any) -> bool:
        """
        Hand a payload to this subscription without blocking.

        Returns True when a buffered event was dropped to make room.
        """
        overflowed = False
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
            overflowed = True
        self._queue.put_nowait(payload)
        self.delivered += 1
        return overflowed

    def _close(self) -> None:
        if self._closed:
            return
        self._closed = True

        # Discard anything still buffered, then wake a waiting consumer
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    async def get(self) -> Any:
        """
        Wait for the next payload.

        Raises:
            SubscriptionClosedError: If the subscription is (or becomes) closed.
        """
        if self._closed:
            raise SubscriptionClosedError(
                f"Subscription {self.id} is closed", details={"topic": self.topic}
            )

        payload = await self._queue.get()
        if payload is _CLOSED:
            raise SubscriptionClosedError(
                f"Subscription {self.id} is closed", details={"topic": self.topic}
            )
        return payload

    def get_nowait(self) -> Any:
        """
        Return the next buffered payload.

        Raises:
            asyncio.QueueEmpty: If nothing is buffered.
            SubscriptionClosedError: If the subscription is closed.
        """
        if self._closed:
            raise SubscriptionClosedError(
                f"Subscription {self.id} is closed", details={"topic": self.topic}
            )
        return self._queue.get_nowait()

    def close(self) -> None:
        """Unsubscribe. Safe to call more than once."""
        self._bus.unsubscribe(self)

    async def aclose(self) -> None:
        self.close()

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> Any:
        try:
            return await self.get()
        except SubscriptionClosedError:
            raise StopAsyncIteration

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else f"pending={self.pending}"
        return f"<Subscription {self.id} topic={self.topic!r} {state}>"


class EventBus:
    """
    In-memory pub/sub keyed by topic name.

    Registrations are kept per topic in registration order, which is also
    the order publish() hands a payload to each subscription.

    For multi-process fan-out this would be replaced with Redis Streams or
    a message broker; here everything lives in one process.
    """

    def __init__(self, default_queue_size: int = 0):
        """
        Initialize the event bus.

        Args:
            default_queue_size: Per-subscription buffer bound used when
                subscribe() is not given one. 0 means unbounded.
        """
        if default_queue_size < 0:
            raise ValueError("default_queue_size must be >= 0")

        self._subscriptions: Dict[str, List[Subscription]] = {}
        self._default_queue_size = default_queue_size

        # Event statistics
        self._total_published = 0
        self._total_delivered = 0
        self._total_dropped = 0

        self._shut_down = False

        logger.info("EventBus initialized")

    @property
    def is_shut_down(self) -> bool:
        return self._shut_down

    def subscribe(self, topic: str, max_queue_size: Optional[int] = None) -> Subscription:
        """
        Register a new listener on ``topic``.

        Args:
            topic: Topic name to listen on.
            max_queue_size: Buffer bound for this subscription; None uses the
                bus default, 0 means unbounded. When the bound is reached the
                oldest buffered event is dropped.

        Returns:
            The subscription handle.

        Raises:
            SubscriptionClosedError: If the bus has been shut down.
        """
        if self._shut_down:
            raise SubscriptionClosedError(
                "Event bus is shut down", details={"topic": topic}
            )
        if max_queue_size is None:
            max_queue_size = self._default_queue_size
        if max_queue_size < 0:
            raise ValueError("max_queue_size must be >= 0")

        subscription = Subscription(self, topic, max_queue_size=max_queue_size)
        self._subscriptions.setdefault(topic, []).append(subscription)

        logger.info(
            f"Subscribed {subscription.id} to {topic}, "
            f"listeners on topic: {len(self._subscriptions[topic])}"
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """
        Remove a registration.

        Buffered events are discarded and a consumer waiting on the
        subscription is released. Unknown or already-removed subscriptions
        are ignored.
        """
        listeners = self._subscriptions.get(subscription.topic)
        if listeners and subscription in listeners:
            listeners.remove(subscription)
            if not listeners:
                del self._subscriptions[subscription.topic]
            logger.info(f"Unsubscribed {subscription.id} from {subscription.topic}")

        subscription._close()

    def publish(self, topic: str, payload: Any) -> int:
        """
        Deliver ``payload`` to every subscription on ``topic``.

        Never suspends: each payload is placed on the subscriber's own
        queue before this returns.

        Returns:
            Number of subscriptions the payload was handed to.
        """
        self._total_published += 1

        # Copy so a subscriber closing mid-fan-out cannot skip a neighbour
        listeners = list(self._subscriptions.get(topic, ()))
        for subscription in listeners:
            if subscription._deliver(payload):
                self._total_dropped += 1
                logger.warning(
                    f"Subscription {subscription.id} on {topic} is full, "
                    f"dropped oldest event (total dropped: {subscription.dropped})"
                )
            self._total_delivered += 1

        logger.debug(f"Published to {topic}: {len(listeners)} listeners")
        return len(listeners)

    def subscriber_count(self, topic: Optional[str] = None) -> int:
        """Count live subscriptions on ``topic``, or on every topic when None."""
        if topic is not None:
            return len(self._subscriptions.get(topic, ()))
        return sum(len(listeners) for listeners in self._subscriptions.values())

    def topics(self) -> List[str]:
        """Topics with at least one live subscription."""
        return list(self._subscriptions)

    def shutdown(self) -> None:
        """
        Close every subscription.

        Call this during application shutdown so listeners stop waiting.
        New subscriptions are refused afterwards.
        """
        self._shut_down = True
        count = self._close_all()
        logger.info(f"EventBus shut down, closed {count} subscriptions")

    def reset(self) -> None:
        """Close every subscription and zero the counters. The bus stays open."""
        count = self._close_all()
        logger.info(f"EventBus reset, closed {count} subscriptions")
        self._total_published = 0
        self._total_delivered = 0
        self._total_dropped = 0

    def _close_all(self) -> int:
        count = self.subscriber_count()
        for listeners in list(self._subscriptions.values()):
            for subscription in list(listeners):
                self.unsubscribe(subscription)
        return count

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get event bus statistics.

        Returns:
            Dictionary with statistics:
            - total_published: Total publish() calls
            - total_delivered: Total payloads handed to subscriptions
            - total_dropped: Buffered events dropped on full queues
            - subscriber_count: Number of live subscriptions
            - topics: Live subscription count per topic
        """
        return {
            "total_published": self._total_published,
            "total_delivered": self._total_delivered,
            "total_dropped": self._total_dropped,
            "subscriber_count": self.subscriber_count(),
            "topics": {
                topic: len(listeners)
                for topic, listeners in self._subscriptions.items()
            },
        }


# Global event bus instance (singleton)
_global_event_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """
    Get the global event bus instance.

    Creates the instance on first call, sized from settings.

    Returns:
        The global EventBus instance
    """
    global _global_event_bus
    if _global_event_bus is None:
        from app.config import settings

        _global_event_bus = EventBus(default_queue_size=settings.SUBSCRIBER_QUEUE_SIZE)
    return _global_event_bus
