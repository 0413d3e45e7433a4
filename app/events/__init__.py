"""
Event system for real-time change notifications.

This module provides:
- Topic-keyed event bus for pub/sub
- Per-listener subscriptions
- Catalog change feed dispatcher
"""

from app.events.bus import EventBus, Subscription, get_event_bus
from app.events.dispatcher import SubscriptionDispatcher

__all__ = ["EventBus", "Subscription", "SubscriptionDispatcher", "get_event_bus"]
