import inspect
import json
import logging
from collections import defaultdict
from datetime import UTC, datetime
from typing import Any, Awaitable, Callable, Dict, List, Union

logger = logging.getLogger(__name__)

SESSION_UPDATED = "session-updated"
SESSION_DELETED = "session-deleted"
SESSION_EXPIRED = "session-expired"

SESSION_EVENTS = (SESSION_UPDATED, SESSION_DELETED, SESSION_EXPIRED)

Handler = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]


class EventBus:
    """
    In-process event bus.

    Handlers run in registration order. A failing handler is logged and
    never stops the remaining handlers or the emitter.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)

    def on(self, event: str, handler: Handler) -> Callable[[], None]:
        """
        Subscribe to an event.

        Args:
            event: Event name
            handler: Sync or async callable receiving the payload

        Returns:
            Callable that removes the subscription
        """
        self._handlers[event].append(handler)
        return lambda: self.off(event, handler)

    def off(self, event: str, handler: Handler) -> None:
        """Unsubscribe a handler (no-op if not subscribed)."""
        handlers = self._handlers.get(event)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def handler_count(self, event: str) -> int:
        """Number of handlers subscribed to an event."""
        return len(self._handlers.get(event, []))

    async def emit(self, event: str, payload: Dict[str, Any]) -> None:
        """Deliver an event to every subscribed handler."""
        for handler in list(self._handlers.get(event, [])):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Event handler for {event} failed: {e}", exc_info=True)


class RedisEventPublisher:
    """
    Mirrors session events to Redis for monitoring.

    Subscribe it to the bus with attach(); each event is published on
    the events:auth-session channel and kept in a capped history list.
    """

    def __init__(self, redis_client, key_prefix: str = "mintauth", history_size: int = 1000):
        """
        Initialize publisher.

        Args:
            redis_client: Async Redis client
            key_prefix: Prefix for the history list key
            history_size: Number of events kept in history
        """
        self.redis = redis_client
        self.channel = "events:auth-session"
        self.history_key = f"{key_prefix}:session:events"
        self.history_size = history_size

    def attach(self, bus: EventBus) -> None:
        """Subscribe to all session lifecycle events on the bus."""
        for event in SESSION_EVENTS:
            bus.on(event, self._handler_for(event))

    def _handler_for(self, event_type: str) -> Handler:
        async def handler(payload: Dict[str, Any]) -> None:
            await self.publish(event_type, payload)

        return handler

    async def publish(self, event_type: str, data: Dict[str, Any]) -> None:
        """Publish session event for monitoring"""
        event = {"type": event_type, "timestamp": datetime.now(UTC).isoformat(), "data": data}

        await self.redis.publish(self.channel, json.dumps(event))

        await self.redis.lpush(self.history_key, json.dumps(event))
        await self.redis.ltrim(self.history_key, 0, self.history_size - 1)
