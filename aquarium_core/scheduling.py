"""Interval scheduling for manager self-ticks.

Managers schedule their periodic work through an injected ``Scheduler``
instead of owning timers. Two implementations are provided:

- AsyncioScheduler: each timer is an ``asyncio.Task`` sleeping on the running
  event loop. Used by the application.
- ManualScheduler: timers fire only when ``advance()`` moves a ManualClock
  forward. Used by tests for deterministic ticks without real waits.

A callback that raises is logged and the timer keeps its cadence: a failed
tick counts as "no observed change this interval".
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, Protocol

from aquarium_core.clock import ManualClock

logger = logging.getLogger(__name__)

TickCallback = Callable[[], None]


class TimerHandle:
    """Handle for a repeating timer. ``cancel()`` is idempotent."""

    def __init__(self, name: str, interval: float, callback: TickCallback) -> None:
        if interval <= 0:
            raise ValueError(f"Timer interval must be positive, got {interval}")
        self.name = name
        self.interval = interval
        self.callback = callback
        self.fire_count = 0
        self._cancelled = False
        self._task: Optional[asyncio.Task] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.debug("Timer %s cancelled after %d ticks", self.name, self.fire_count)

    def fire(self) -> None:
        """Run the callback once, logging instead of propagating failures."""
        if self._cancelled:
            return
        self.fire_count += 1
        try:
            self.callback()
        except Exception as e:
            logger.error(f"Tick {self.name} failed: {e}", exc_info=True)


class Scheduler(Protocol):
    """Anything that can run a callback every ``interval`` seconds."""

    def call_every(self, interval: float, callback: TickCallback, name: str = "timer") -> TimerHandle:
        ...


class AsyncioScheduler:
    """Scheduler running each timer as a task on the current event loop."""

    def __init__(self) -> None:
        self._handles: List[TimerHandle] = []

    def call_every(self, interval: float, callback: TickCallback, name: str = "timer") -> TimerHandle:
        """Start a repeating timer.

        Must be called from within a running event loop.
        """
        handle = TimerHandle(name, interval, callback)
        loop = asyncio.get_running_loop()
        handle._task = loop.create_task(self._run(handle), name=f"tick_{name}")
        self._handles.append(handle)
        return handle

    async def _run(self, handle: TimerHandle) -> None:
        try:
            while not handle.cancelled:
                await asyncio.sleep(handle.interval)
                handle.fire()
        except asyncio.CancelledError:
            logger.debug("Tick loop %s stopped", handle.name)
            raise

    def cancel_all(self) -> None:
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()

    @property
    def active_count(self) -> int:
        self._handles = [h for h in self._handles if not h.cancelled]
        return len(self._handles)


class ManualScheduler:
    """Deterministic scheduler driven by ``advance()``.

    Example:
        clock = ManualClock()
        scheduler = ManualScheduler(clock)
        scheduler.call_every(10.0, manager.tick)
        scheduler.advance(30.0)  # fires three times, clock moves 30s
    """

    def __init__(self, clock: ManualClock) -> None:
        self.clock = clock
        self._elapsed = 0.0
        self._timers: List[tuple[float, TimerHandle]] = []

    def call_every(self, interval: float, callback: TickCallback, name: str = "timer") -> TimerHandle:
        handle = TimerHandle(name, interval, callback)
        self._timers.append((self._elapsed + interval, handle))
        return handle

    def advance(self, seconds: float) -> int:
        """Move time forward, firing every timer that falls due.

        Returns:
            Number of callbacks fired
        """
        target = self._elapsed + seconds
        fired = 0
        while True:
            self._timers = [(due, h) for due, h in self._timers if not h.cancelled]
            due_timers = [(due, h) for due, h in self._timers if due <= target]
            if not due_timers:
                break
            due, handle = min(due_timers, key=lambda item: item[0])
            self._timers.remove((due, handle))
            self._move_to(due)
            handle.fire()
            fired += 1
            if not handle.cancelled:
                self._timers.append((due + handle.interval, handle))
        self._move_to(target)
        return fired

    def _move_to(self, elapsed: float) -> None:
        delta = elapsed - self._elapsed
        if delta > 0:
            self.clock.advance(seconds=delta)
            self._elapsed = elapsed

    @property
    def active_count(self) -> int:
        return sum(1 for _, h in self._timers if not h.cancelled)
