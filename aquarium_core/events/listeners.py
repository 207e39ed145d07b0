"""Per-manager listener registry with explicit subscriptions.

Each simulation manager owns one ``ListenerSet`` for its snapshot type.
Subscribers receive a fresh snapshot on every change and tear down their own
registration through the returned ``Subscription``.
"""

from __future__ import annotations

import logging
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

S = TypeVar("S")

Listener = Callable[[S], None]


class Subscription:
    """Handle returned by ``ListenerSet.subscribe``; ``cancel()`` is idempotent."""

    def __init__(self, owner: "ListenerSet", listener: Callable) -> None:
        self._owner = owner
        self._listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._owner._remove(self._listener)


class ListenerSet(Generic[S]):
    """Ordered set of snapshot listeners.

    A listener that raises is logged and skipped; the others still receive
    the snapshot.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Subscription:
        self._listeners.append(listener)
        return Subscription(self, listener)

    def _remove(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def notify(self, snapshot: S) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"{self._name} listener failed: {e}", exc_info=True)

    def clear(self) -> None:
        self._listeners.clear()

    def __len__(self) -> int:
        return len(self._listeners)
