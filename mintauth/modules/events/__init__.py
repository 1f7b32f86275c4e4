"""
Events Module - Black Box Interface

Purpose: Deliver session lifecycle events to subscribers
Interface: EventBus.on(), off(), emit()
Hidden: Handler bookkeeping, failure isolation

Delivery can be extended (e.g. RedisEventPublisher) without touching emitters.
"""

from .bus import (
    SESSION_DELETED,
    SESSION_EVENTS,
    SESSION_EXPIRED,
    SESSION_UPDATED,
    EventBus,
    RedisEventPublisher,
)

__all__ = [
    "EventBus",
    "RedisEventPublisher",
    "SESSION_UPDATED",
    "SESSION_DELETED",
    "SESSION_EXPIRED",
    "SESSION_EVENTS",
]
