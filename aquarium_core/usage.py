"""Usage aggregation against restriction limits.

Reduces raw per-app usage samples to the figures the rest of the engine
needs: health damage, exceeded/approaching alerts, an overall usage ratio,
and the usage accrued since the previous observation.

All per-app comparisons go through ``usage_ratio`` so damage and alerting
share one ratio computation.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from aquarium_core.config.usage import APPROACHING_RATIO, DEFAULT_DAILY_LIMIT, EXCEEDED_RATIO
from aquarium_core.health import Duration, as_minutes, health_decay_from_usage
from aquarium_core.models import AppRestriction, AppUsageData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UsageAlerts:
    """Restricted apps at or near their daily limit."""

    exceeded: List[AppUsageData] = field(default_factory=list)
    approaching: List[AppUsageData] = field(default_factory=list)

    @property
    def has_alerts(self) -> bool:
        return bool(self.exceeded or self.approaching)


def limit_for(app_id: str, limits: Mapping[str, Duration]) -> Duration:
    """Configured daily limit for ``app_id``, or the default when unset.

    A configured limit of zero is kept; any usage against it is maximum decay.
    """
    limit = limits.get(app_id)
    if limit is None:
        return DEFAULT_DAILY_LIMIT
    return limit


def usage_ratio(usage: Duration, limit: Duration) -> float:
    """``usage / limit``; a non-positive limit is exhausted by any usage."""
    used = as_minutes(usage)
    allowed = as_minutes(limit)
    if allowed <= 0:
        return math.inf if used > 0 else 0.0
    return used / allowed


def total_usage_damage(samples: Sequence[AppUsageData], limits: Mapping[str, Duration]) -> float:
    return sum(
        health_decay_from_usage(sample.daily_usage, limit_for(sample.app_id, limits))
        for sample in samples
    )


def restriction_limits(restrictions: Iterable[AppRestriction]) -> Dict[str, timedelta]:
    """Map app_id to daily limit for active restrictions."""
    return {r.app_id: r.daily_limit for r in restrictions if r.is_active}


def classify_usage(
    samples: Sequence[AppUsageData], restrictions: Iterable[AppRestriction]
) -> UsageAlerts:
    """Split restricted apps into exceeded (ratio >= 1.0) and approaching (>= 0.8).

    Apps without a restriction are never reported.
    """
    by_package = {r.package_name: r for r in restrictions}
    alerts = UsageAlerts()
    for sample in samples:
        restriction = by_package.get(sample.package_name)
        if restriction is None:
            continue
        ratio = usage_ratio(sample.daily_usage, restriction.daily_limit)
        if ratio >= EXCEEDED_RATIO:
            alerts.exceeded.append(sample)
        elif ratio >= APPROACHING_RATIO:
            alerts.approaching.append(sample)
    return alerts


def overall_usage_ratio(
    samples: Sequence[AppUsageData], restrictions: Sequence[AppRestriction]
) -> float:
    """Total usage over the sum of all daily limits (0 without restrictions)."""
    if not restrictions:
        return 0.0
    used = sum((s.daily_usage for s in samples), timedelta(0))
    allowed = sum((r.daily_limit for r in restrictions), timedelta(0))
    if allowed <= timedelta(0):
        return 0.0
    return used / allowed


def most_used_app(samples: Sequence[AppUsageData]) -> Optional[str]:
    """Display name of the app with the largest daily usage."""
    used = [s for s in samples if s.daily_usage > timedelta(0)]
    if not used:
        return None
    return max(used, key=lambda s: s.daily_usage).display_name


class UsageDeltaTracker:
    """Turns cumulative daily usage figures into per-interval increments.

    Usage sources report "used N minutes today", not "used N minutes since
    you last asked". The tracker remembers the previous figure per package
    and reports the difference. A figure lower than the previous one means
    the daily counter rolled over, so the whole new figure is the increment.

    The first time a package is seen there is no baseline. The increment is
    then estimated as the daily figure bounded by the observation window, and
    only when the app was used inside that window.
    """

    def __init__(self) -> None:
        self._previous: Dict[str, timedelta] = {}

    def deltas(
        self,
        samples: Sequence[AppUsageData],
        window_start: datetime,
        now: datetime,
    ) -> Dict[str, timedelta]:
        window = max(now - window_start, timedelta(0))
        increments: Dict[str, timedelta] = {}
        for sample in samples:
            previous = self._previous.get(sample.package_name)
            current = sample.daily_usage
            if previous is None:
                if sample.last_used >= window_start:
                    delta = min(current, window)
                else:
                    delta = timedelta(0)
            elif current < previous:
                logger.debug(f"Usage counter for {sample.package_name} rolled over")
                delta = current
            else:
                delta = current - previous
            self._previous[sample.package_name] = current
            if delta > timedelta(0):
                increments[sample.package_name] = increments.get(sample.package_name, timedelta(0)) + delta
        return increments

    def total_minutes(self, samples: Sequence[AppUsageData], window_start: datetime, now: datetime) -> float:
        """Sum of ``deltas`` in minutes."""
        increments = self.deltas(samples, window_start, now)
        return sum(as_minutes(d) for d in increments.values())

    def reset(self) -> None:
        self._previous.clear()

    def __len__(self) -> int:
        return len(self._previous)


class UsageDamageLedger:
    """Usage damage already charged per app for the current day.

    Samples carry cumulative daily usage, so charging their full damage on
    every tick would compound. The ledger charges only the growth of each
    app's capped daily damage. A usage figure lower than the previous one
    starts a new day for that app.
    """

    def __init__(self) -> None:
        self._charged: Dict[str, float] = {}
        self._usage: Dict[str, timedelta] = {}

    def charge(self, samples: Sequence[AppUsageData], limits: Mapping[str, Duration]) -> float:
        """Damage not yet charged for ``samples``; records it as charged."""
        total = 0.0
        for sample in samples:
            key = sample.app_id
            previous = self._usage.get(key)
            if previous is not None and sample.daily_usage < previous:
                self._charged.pop(key, None)
            self._usage[key] = sample.daily_usage

            damage = health_decay_from_usage(sample.daily_usage, limit_for(key, limits))
            charged = self._charged.get(key, 0.0)
            if damage > charged:
                total += damage - charged
                self._charged[key] = damage
        return total
