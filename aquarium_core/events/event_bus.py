"""Synchronous event bus for aquarium domain events.

The state container publishes pet lifecycle and settings changes here; the
persistence service and the composition root subscribe. Dispatch is
synchronous and in registration order, so a handler sees the store in the
state the event describes.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EventBus:
    """Type-dispatched publish/subscribe.

    Example:
        bus = EventBus()
        bus.subscribe(PetDiedEvent, persistence.on_pet_died)
        bus.emit(PetDiedEvent(dead_pet=record))
    """

    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable]] = defaultdict(list)

    def emit(self, event: object) -> None:
        """Deliver ``event`` to every handler registered for its type.

        A failing handler is logged and does not stop delivery to the rest.
        """
        handlers = self._handlers.get(type(event))
        if not handlers:
            return
        for handler in list(handlers):
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Handler {getattr(handler, '__name__', handler)!r} failed for "
                    f"{type(event).__name__}: {e}",
                    exc_info=True,
                )

    def subscribe(self, event_type: type[T], handler: Callable[[T], None]) -> None:
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: type[T], handler: Callable[[T], None]) -> bool:
        """Remove a handler.

        Returns:
            True if handler was found and removed, False otherwise
        """
        handlers = self._handlers.get(event_type)
        if handlers and handler in handlers:
            handlers.remove(handler)
            return True
        return False

    def clear_subscribers(self) -> None:
        self._handlers.clear()

    def subscriber_count(self, event_type: type) -> int:
        return len(self._handlers.get(event_type, []))
