"""
Test suite for app/events/bus.py

Coverage targets:
- Subscription registration and removal
- Fan-out to every subscriber on a topic
- Topic isolation
- Publish order per subscriber
- No replay for late subscribers
- Per-subscriber buffering and overflow
- Closing wakes waiting consumers
- Statistics and reset
"""

import asyncio

import pytest

from app.events.bus import EventBus, Subscription, get_event_bus
from core.exceptions import SubscriptionClosedError


async def _next(subscription: Subscription, timeout: float = 1.0):
    return await asyncio.wait_for(subscription.get(), timeout=timeout)


class TestEventBusSubscription:
    """Test subscription registration."""

    def test_subscribe_registers_listener(self, event_bus: EventBus):
        subscription = event_bus.subscribe("orders")

        assert isinstance(subscription, Subscription)
        assert subscription.topic == "orders"
        assert event_bus.subscriber_count("orders") == 1
        assert event_bus.topics() == ["orders"]

    def test_each_subscribe_creates_new_handle(self, event_bus: EventBus):
        first = event_bus.subscribe("orders")
        second = event_bus.subscribe("orders")

        assert first is not second
        assert first.id != second.id
        assert event_bus.subscriber_count("orders") == 2

    def test_unsubscribe_removes_registration(self, event_bus: EventBus):
        subscription = event_bus.subscribe("orders")

        event_bus.unsubscribe(subscription)

        assert event_bus.subscriber_count("orders") == 0
        assert event_bus.topics() == []
        assert subscription.closed

    def test_unsubscribe_is_idempotent(self, event_bus: EventBus):
        subscription = event_bus.subscribe("orders")

        subscription.close()
        subscription.close()
        event_bus.unsubscribe(subscription)

        assert event_bus.subscriber_count() == 0

    def test_negative_queue_size_rejected(self, event_bus: EventBus):
        with pytest.raises(ValueError):
            event_bus.subscribe("orders", max_queue_size=-1)

        with pytest.raises(ValueError):
            EventBus(default_queue_size=-1)


class TestEventPublishing:
    """Test event publishing and delivery."""

    def test_publish_without_subscribers(self, event_bus: EventBus):
        delivered = event_bus.publish("orders", {"n": 1})

        assert delivered == 0
        assert event_bus.get_statistics()["total_published"] == 1

    @pytest.mark.asyncio
    async def test_publish_fans_out_to_all_subscribers(self, event_bus: EventBus):
        subscriptions = [event_bus.subscribe("orders") for _ in range(3)]

        delivered = event_bus.publish("orders", "payload")

        assert delivered == 3
        for subscription in subscriptions:
            assert await _next(subscription) == "payload"

    @pytest.mark.asyncio
    async def test_topics_are_isolated(self, event_bus: EventBus):
        orders = event_bus.subscribe("orders")
        users = event_bus.subscribe("users")

        event_bus.publish("orders", "order-1")

        assert await _next(orders) == "order-1"
        assert users.pending == 0
        with pytest.raises(asyncio.QueueEmpty):
            users.get_nowait()

    @pytest.mark.asyncio
    async def test_publish_order_preserved(self, event_bus: EventBus):
        first = event_bus.subscribe("orders")
        second = event_bus.subscribe("orders")

        for n in range(10):
            event_bus.publish("orders", n)

        assert [await _next(first) for _ in range(10)] == list(range(10))
        assert [await _next(second) for _ in range(10)] == list(range(10))

    @pytest.mark.asyncio
    async def test_late_subscriber_sees_no_replay(self, event_bus: EventBus):
        early = event_bus.subscribe("orders")
        event_bus.publish("orders", "before")

        late = event_bus.subscribe("orders")
        event_bus.publish("orders", "after")

        assert await _next(early) == "before"
        assert await _next(early) == "after"
        assert await _next(late) == "after"
        assert late.pending == 0

    @pytest.mark.asyncio
    async def test_publish_does_not_wait_for_consumers(self, event_bus: EventBus):
        """A subscriber nobody reads from just buffers."""
        idle = event_bus.subscribe("orders")
        active = event_bus.subscribe("orders")

        for n in range(1000):
            event_bus.publish("orders", n)

        assert idle.pending == 1000
        assert await _next(active) == 0

    @pytest.mark.asyncio
    async def test_waiting_consumer_is_woken_by_publish(self, event_bus: EventBus):
        subscription = event_bus.subscribe("orders")
        waiter = asyncio.create_task(subscription.get())
        await asyncio.sleep(0)

        event_bus.publish("orders", "wake")

        assert await asyncio.wait_for(waiter, timeout=1.0) == "wake"

    @pytest.mark.asyncio
    async def test_no_delivery_after_unsubscribe(self, event_bus: EventBus):
        subscription = event_bus.subscribe("orders")
        event_bus.publish("orders", "buffered")

        subscription.close()
        delivered = event_bus.publish("orders", "late")

        assert delivered == 0
        assert subscription.pending == 0
        with pytest.raises(SubscriptionClosedError):
            await subscription.get()


class TestSubscriptionIteration:
    """Test async iteration and cancellation."""

    @pytest.mark.asyncio
    async def test_async_for_ends_when_closed(self, event_bus: EventBus):
        subscription = event_bus.subscribe("orders")
        received = []

        async def consume():
            async for payload in subscription:
                received.append(payload)

        consumer = asyncio.create_task(consume())
        event_bus.publish("orders", 1)
        event_bus.publish("orders", 2)
        await asyncio.sleep(0.01)

        subscription.close()
        await asyncio.wait_for(consumer, timeout=1.0)

        assert received == [1, 2]

    @pytest.mark.asyncio
    async def test_close_wakes_blocked_get(self, event_bus: EventBus):
        subscription = event_bus.subscribe("orders")
        waiter = asyncio.create_task(subscription.get())
        await asyncio.sleep(0)

        event_bus.unsubscribe(subscription)

        with pytest.raises(SubscriptionClosedError):
            await asyncio.wait_for(waiter, timeout=1.0)

    @pytest.mark.asyncio
    async def test_context_manager_unsubscribes(self, event_bus: EventBus):
        async with event_bus.subscribe("orders") as subscription:
            event_bus.publish("orders", "inside")
            assert await _next(subscription) == "inside"
            assert event_bus.subscriber_count("orders") == 1

        assert subscription.closed
        assert event_bus.subscriber_count("orders") == 0

    @pytest.mark.asyncio
    async def test_aclose(self, event_bus: EventBus):
        subscription = event_bus.subscribe("orders")

        await subscription.aclose()

        assert event_bus.subscriber_count() == 0

    def test_get_nowait_on_closed_raises(self, event_bus: EventBus):
        subscription = event_bus.subscribe("orders")
        subscription.close()

        with pytest.raises(SubscriptionClosedError):
            subscription.get_nowait()


class TestBackpressure:
    """Test bounded subscriber buffers."""

    @pytest.mark.asyncio
    async def test_full_queue_drops_oldest(self, event_bus: EventBus):
        subscription = event_bus.subscribe("orders", max_queue_size=2)

        for n in range(5):
            event_bus.publish("orders", n)

        assert subscription.dropped == 3
        assert await _next(subscription) == 3
        assert await _next(subscription) == 4
        assert event_bus.get_statistics()["total_dropped"] == 3

    @pytest.mark.asyncio
    async def test_bounded_subscriber_does_not_affect_others(self, event_bus: EventBus):
        bounded = event_bus.subscribe("orders", max_queue_size=1)
        unbounded = event_bus.subscribe("orders")

        for n in range(3):
            event_bus.publish("orders", n)

        assert bounded.pending == 1
        assert [await _next(unbounded) for _ in range(3)] == [0, 1, 2]

    def test_default_queue_size_applies(self):
        bus = EventBus(default_queue_size=1)
        subscription = bus.subscribe("orders")

        bus.publish("orders", "a")
        bus.publish("orders", "b")

        assert subscription.pending == 1
        assert subscription.get_nowait() == "b"


class TestEventStatistics:
    """Test statistics and lifecycle helpers."""

    def test_statistics(self, event_bus: EventBus):
        event_bus.subscribe("orders")
        event_bus.subscribe("orders")
        event_bus.subscribe("users")

        event_bus.publish("orders", 1)
        event_bus.publish("users", 2)

        stats = event_bus.get_statistics()
        assert stats["total_published"] == 2
        assert stats["total_delivered"] == 3
        assert stats["total_dropped"] == 0
        assert stats["subscriber_count"] == 3
        assert stats["topics"] == {"orders": 2, "users": 1}

    def test_shutdown_closes_all(self, event_bus: EventBus):
        subscriptions = [event_bus.subscribe(topic) for topic in ("a", "b", "b")]

        event_bus.shutdown()

        assert all(subscription.closed for subscription in subscriptions)
        assert event_bus.subscriber_count() == 0
        assert event_bus.is_shut_down

    def test_subscribe_after_shutdown_refused(self, event_bus: EventBus):
        event_bus.shutdown()

        with pytest.raises(SubscriptionClosedError):
            event_bus.subscribe("orders")

    def test_reset_keeps_bus_open(self, event_bus: EventBus):
        event_bus.subscribe("orders")

        event_bus.reset()

        assert not event_bus.is_shut_down
        assert event_bus.subscribe("orders").closed is False

    def test_reset_clears_counters(self, event_bus: EventBus):
        event_bus.subscribe("orders")
        event_bus.publish("orders", 1)

        event_bus.reset()

        stats = event_bus.get_statistics()
        assert stats["total_published"] == 0
        assert stats["total_delivered"] == 0
        assert stats["subscriber_count"] == 0

    def test_global_event_bus_singleton(self):
        assert get_event_bus() is get_event_bus()
