import logging
from datetime import datetime
from typing import Callable, NamedTuple

__all__ = [
    'Event', 'EventBus',
    'STORE_RELOADED', 'ENTITY_CREATED', 'ENTITY_UPDATED', 'ENTITY_REMOVED', 'STORE_ERROR',
]

logger = logging.getLogger(__name__)

STORE_RELOADED = "STORE_RELOADED"
ENTITY_CREATED = "ENTITY_CREATED"
ENTITY_UPDATED = "ENTITY_UPDATED"
ENTITY_REMOVED = "ENTITY_REMOVED"
STORE_ERROR = "STORE_ERROR"


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event, dict], object]


class EventBus:
    """Synchronous publish/subscribe used to announce store changes."""

    def __init__(self):
        self._subscribers: dict[str, list[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        self._subscribers.setdefault(name, []).append(handler)

    def unsubscribe(self, name: str, handler: Handler) -> None:
        handlers = self._subscribers.get(name, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, name: str, payload: dict) -> list:
        handlers = self._subscribers.get(name)
        if not handlers:
            return []

        event = Event(name=name, ts=datetime.now().isoformat(), payload=payload)
        results = []
        for handler in list(handlers):
            try:
                results.append(handler(event, payload))
            except Exception:
                # subscriber failures are logged, never propagated to the publisher
                logger.exception("Handler %r failed for %s", handler, name)
                results.append(None)
        return results
