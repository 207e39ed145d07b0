"""Water quality (turbidity) manager.

Turbidity integrates restricted-app usage over time: it rises while those
apps are in use and slowly clears while they are not. Every Sunday at 00:00
local time the water is changed and turbidity returns to its default.

The manager is an explicit instance owned by the composition root. Time
comes from an injected ``Clock`` and periodic self-ticks from an injected
``Scheduler``, so the weekly cycle can be exercised without real waits.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Optional, Sequence

from aquarium_core.clock import Clock, last_sunday, minutes_between, next_sunday
from aquarium_core.config.water import (
    CLEAN_THRESHOLD,
    DEFAULT_TURBIDITY,
    DIRTY_THRESHOLD,
    MAX_TURBIDITY,
    MIN_TURBIDITY,
    MODERATE_THRESHOLD,
    TURBIDITY_DECREASE_RATE,
    TURBIDITY_INCREASE_RATE,
    TURBIDITY_PRECISION,
    WATER_UPDATE_INTERVAL,
)
from aquarium_core.events.listeners import ListenerSet, Subscription
from aquarium_core.math_utils import clamp, round_to
from aquarium_core.models import AppUsageData, AquariumConfig, WaterQualityLevel
from aquarium_core.scheduling import Scheduler, TimerHandle
from aquarium_core.usage import UsageDeltaTracker

logger = logging.getLogger(__name__)

MS_PER_MINUTE = 60 * 1000


@dataclass(frozen=True)
class WaterQualityInfo:
    """Published water quality snapshot.

    Attributes:
        turbidity: 0-100, rounded to two decimals
        level: Classification of ``turbidity``
        is_harmful: Level is moderate or worse (turbidity 20 and up)
        time_until_danger: Milliseconds until the dirty threshold at the
            usage-driven rate, 0 when already there
        last_reset_time: Most recent water change boundary
        next_reset_time: Next Sunday 00:00 after now
    """

    turbidity: float
    level: WaterQualityLevel
    is_harmful: bool
    time_until_danger: float
    last_reset_time: datetime
    next_reset_time: datetime


def classify_turbidity(turbidity: float) -> WaterQualityLevel:
    if turbidity < CLEAN_THRESHOLD:
        return WaterQualityLevel.CLEAN
    if turbidity < MODERATE_THRESHOLD:
        return WaterQualityLevel.MODERATE
    if turbidity < DIRTY_THRESHOLD:
        return WaterQualityLevel.DIRTY
    return WaterQualityLevel.VERY_DIRTY


def time_until_danger(turbidity: float) -> float:
    """Milliseconds of continuous usage before the water turns dirty."""
    if turbidity >= DIRTY_THRESHOLD:
        return 0.0
    minutes = (DIRTY_THRESHOLD - turbidity) / TURBIDITY_INCREASE_RATE
    return max(0.0, minutes * MS_PER_MINUTE)


class WaterQualityManager:
    """Owns the tank's turbidity and its weekly reset cycle."""

    def __init__(
        self, clock: Clock, scheduler: Scheduler, update_interval: float = WATER_UPDATE_INTERVAL
    ) -> None:
        self._clock = clock
        self._scheduler = scheduler
        self._update_interval = update_interval
        now = clock.now()
        self._turbidity = DEFAULT_TURBIDITY
        self._last_update_time = now
        self._last_reset_time = last_sunday(now)
        self._usage_tracker = UsageDeltaTracker()
        self._listeners: ListenerSet[WaterQualityInfo] = ListenerSet("water_quality")
        self._monitor_subscription: Optional[Subscription] = None
        self._timer: Optional[TimerHandle] = None
        logger.info(f"Last water change: {self._last_reset_time.isoformat()}")

    @property
    def turbidity(self) -> float:
        """Unrounded turbidity."""
        return self._turbidity

    @property
    def last_update_time(self) -> datetime:
        return self._last_update_time

    @property
    def last_reset_time(self) -> datetime:
        return self._last_reset_time

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def update_turbidity(self, samples: Sequence[AppUsageData]) -> None:
        """Advance turbidity to now using the given usage samples.

        An empty sample list means no usage since the last update, so the
        water clears at the natural rate.
        """
        now = self._clock.now()
        self._check_weekly_reset(now)

        elapsed = minutes_between(self._last_update_time, now)
        if elapsed <= 0:
            return

        usage_minutes = self._usage_tracker.total_minutes(samples, self._last_update_time, now)
        if usage_minutes > 0:
            change = min(usage_minutes, elapsed) * TURBIDITY_INCREASE_RATE
        else:
            change = -elapsed * TURBIDITY_DECREASE_RATE

        self._turbidity = clamp(self._turbidity + change, MIN_TURBIDITY, MAX_TURBIDITY)
        self._last_update_time = now
        logger.debug(f"Turbidity {self._turbidity:.1f}% (change {change:+.2f}%)")
        self._notify()

    def _check_weekly_reset(self, now: datetime) -> None:
        if now >= next_sunday(self._last_reset_time):
            logger.info("Weekly water change")
            self._reset_water(now)

    def _reset_water(self, now: datetime) -> None:
        self._turbidity = DEFAULT_TURBIDITY
        self._last_reset_time = last_sunday(now)
        self._last_update_time = now
        self._notify()

    def perform_manual_water_change(self) -> None:
        """User-invoked water change, identical to the weekly one."""
        logger.info("Manual water change")
        self._reset_water(self._clock.now())

    def set_turbidity(self, turbidity: float) -> None:
        """Set turbidity directly (clamped). Test and debug hook."""
        self._turbidity = clamp(turbidity, MIN_TURBIDITY, MAX_TURBIDITY)
        self._notify()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_current_water_quality(self) -> WaterQualityInfo:
        turbidity = self._turbidity
        return WaterQualityInfo(
            turbidity=round_to(turbidity, TURBIDITY_PRECISION),
            level=classify_turbidity(turbidity),
            is_harmful=turbidity >= CLEAN_THRESHOLD,
            time_until_danger=time_until_danger(turbidity),
            last_reset_time=self._last_reset_time,
            next_reset_time=next_sunday(self._clock.now()),
        )

    # ------------------------------------------------------------------
    # Monitoring
    # ------------------------------------------------------------------

    def start_monitoring(self, callback: Callable[[WaterQualityInfo], None]) -> None:
        """Register the monitoring callback and start periodic self-ticks.

        Starting again while active tears down the previous session first,
        so only the latest callback stays registered as the monitor.
        """
        if self.is_monitoring():
            self.stop_monitoring()

        self._monitor_subscription = self._listeners.subscribe(callback)
        logger.info("Water quality monitoring started")
        self._notify()
        self._timer = self._scheduler.call_every(
            self._update_interval, self._tick, name="water_quality"
        )

    def _tick(self) -> None:
        # Usage normally arrives by push; self-ticks only apply natural clearing
        self.update_turbidity([])

    def stop_monitoring(self) -> None:
        """Cancel the self-tick timer and drop the monitoring callback."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._monitor_subscription is not None:
            self._monitor_subscription.cancel()
            self._monitor_subscription = None
            logger.info("Water quality monitoring stopped")

    def is_monitoring(self) -> bool:
        return self._timer is not None

    def subscribe(self, listener: Callable[[WaterQualityInfo], None]) -> Subscription:
        """Add a listener alongside the monitoring callback."""
        return self._listeners.subscribe(listener)

    def _notify(self) -> None:
        if len(self._listeners):
            self._listeners.notify(self.get_current_water_quality())

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def export_state(self, base: Optional[AquariumConfig] = None) -> AquariumConfig:
        """Copy of ``base`` (or a default config) carrying the current water state."""
        return replace(
            base or AquariumConfig(),
            water_quality=self._turbidity,
            last_update_time=self._last_update_time,
            last_reset_time=self._last_reset_time,
        )

    def restore_state(self, config: AquariumConfig) -> None:
        """Resume from persisted state. Missing timestamps keep current values."""
        self._turbidity = clamp(config.water_quality, MIN_TURBIDITY, MAX_TURBIDITY)
        if config.last_update_time is not None:
            self._last_update_time = config.last_update_time
        if config.last_reset_time is not None:
            self._last_reset_time = config.last_reset_time
        self._usage_tracker.reset()
        logger.info(f"Water state restored: turbidity {self._turbidity:.1f}%")
