"""Pet health calculations.

Every function here is pure: explicit inputs, no clock reads, no state. The
simulation calls ``update_pet_health`` once per tick; the remaining functions
are its building blocks and are also used directly by the UI-facing store.

Degenerate inputs never raise. A non-positive limit means "no allowance" and
yields the maximum decay, negative elapsed or offline minutes count as zero,
and results are clamped into the health range.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Mapping, Optional, Sequence, Union

from aquarium_core.config.pet import (
    ACTIVITY_LEVEL_FACTOR,
    ACTIVITY_LEVEL_RANGE,
    HEALTH_DECAY_RATE,
    HEALTH_RESTORE_RATE,
    MAX_HEALTH,
    MAX_HEALTH_DECAY,
    MAX_USAGE_DECAY_RATIO,
    MIN_HEALTH,
    MOVEMENT_SPEED_RANGE,
    NATURAL_DECAY_FACTOR,
    RESPONSE_TO_TOUCH_FACTOR,
    RESPONSE_TO_TOUCH_RANGE,
)
from aquarium_core.math_utils import clamp, percentage
from aquarium_core.models import NotificationLevel, PetStatus

if TYPE_CHECKING:
    from aquarium_core.models import AppUsageData

Duration = Union[timedelta, float]


def as_minutes(value: Duration) -> float:
    """Minutes in ``value``; plain numbers are taken as minutes already."""
    if isinstance(value, timedelta):
        return value.total_seconds() / 60.0
    return float(value)


@dataclass(frozen=True)
class BehaviorPattern:
    """Health-derived behavior parameters, each within a fixed range."""

    movement_speed: float
    activity_level: float
    response_to_touch: float


@dataclass(frozen=True)
class HealthUpdate:
    """Snapshot produced by one ``update_pet_health`` call.

    Attributes:
        health: New health, 0-100
        status: Health band for ``health``
        risk_percentage: 100 - health, as a percentage of max health
        water_turbidity: Health-derived turbidity (display shortcut only)
        survival_time: Minutes until death at the base decay rate
    """

    health: float
    status: PetStatus
    risk_percentage: float
    water_turbidity: float
    survival_time: float


def health_decay_from_usage(usage_time: Duration, time_limit: Duration) -> float:
    """Health lost for one app given its usage against its limit.

    The usage/limit ratio is capped at 2.0, so extreme overuse decays no
    faster than double usage.
    """
    usage = as_minutes(usage_time)
    limit = as_minutes(time_limit)
    if usage <= 0:
        return 0.0
    if limit <= 0:
        return MAX_HEALTH_DECAY
    ratio = min(usage / limit, MAX_USAGE_DECAY_RATIO)
    return HEALTH_DECAY_RATE * ratio


def natural_health_decay(elapsed_minutes: float, base_decay_rate: float = HEALTH_DECAY_RATE) -> float:
    """Passive neglect: a tenth of the usage-driven rate per elapsed minute."""
    return max(0.0, elapsed_minutes) * base_decay_rate * NATURAL_DECAY_FACTOR


def health_restoration(offline_minutes: float, restore_rate: float = HEALTH_RESTORE_RATE) -> float:
    """Linear recovery while restricted apps are not in use."""
    return max(0.0, offline_minutes) * restore_rate


def total_usage_damage(
    samples: Sequence["AppUsageData"], limits: Mapping[str, Duration]
) -> float:
    """Summed decay of every sample against its app's daily limit."""
    from aquarium_core.usage import total_usage_damage as aggregate

    return aggregate(samples, limits)


def new_health(current: float, delta: float) -> float:
    return clamp(current + delta, MIN_HEALTH, MAX_HEALTH)


def pet_status(health: float) -> PetStatus:
    """Health band. A health exactly on a threshold takes the worse band."""
    return PetStatus.from_health(health)


def risk_percentage(health: float) -> float:
    return clamp(percentage(MAX_HEALTH, MAX_HEALTH - health), 0.0, 100.0)


def water_turbidity_from_health(health: float) -> float:
    """Turbidity implied by health alone.

    Display shortcut only; the Water Quality Manager's time-integrated value
    is the one that is persisted.
    """
    return MAX_HEALTH - health


def survival_time(current_health: float, decay_rate: float) -> float:
    """Minutes until health reaches zero, ``math.inf`` when not decaying."""
    if decay_rate <= 0:
        return math.inf
    return max(0.0, current_health / decay_rate)


def behavior_pattern(health: float) -> BehaviorPattern:
    ratio = health / MAX_HEALTH
    return BehaviorPattern(
        movement_speed=clamp(ratio, *MOVEMENT_SPEED_RANGE),
        activity_level=clamp(ratio * ACTIVITY_LEVEL_FACTOR, *ACTIVITY_LEVEL_RANGE),
        response_to_touch=clamp(ratio * RESPONSE_TO_TOUCH_FACTOR, *RESPONSE_TO_TOUCH_RANGE),
    )


def notification_level(health: float) -> NotificationLevel:
    status = pet_status(health)
    if status is PetStatus.DEAD:
        return NotificationLevel.DEATH
    if status is PetStatus.CRITICAL:
        return NotificationLevel.CRITICAL
    if status is PetStatus.AT_RISK:
        return NotificationLevel.WARNING
    return NotificationLevel.NONE


def update_pet_health(
    current_health: float,
    samples: Sequence["AppUsageData"],
    limits: Mapping[str, Duration],
    elapsed_minutes: float,
    offline_minutes: float,
    usage_damage: Optional[float] = None,
) -> HealthUpdate:
    """Apply one tick of usage damage, natural decay and restoration.

    net damage = usage damage + natural decay - restoration

    Idempotent for identical inputs; the caller owns the resulting health.

    Args:
        current_health: Health before this tick
        samples: Usage samples observed this tick
        limits: Daily limit per app_id (missing apps use the default limit)
        elapsed_minutes: Minutes since the previous tick
        offline_minutes: Minutes of that span without restricted-app usage
        usage_damage: Usage damage already computed by the caller (for
            example by a ``UsageDamageLedger``); replaces the damage of
            ``samples`` when given

    Returns:
        HealthUpdate with the new health and its derived metrics
    """
    damage = total_usage_damage(samples, limits) if usage_damage is None else max(0.0, usage_damage)
    damage += natural_health_decay(elapsed_minutes)
    damage -= health_restoration(offline_minutes)

    health = new_health(current_health, -damage)
    return HealthUpdate(
        health=health,
        status=pet_status(health),
        risk_percentage=risk_percentage(health),
        water_turbidity=water_turbidity_from_health(health),
        survival_time=survival_time(health, HEALTH_DECAY_RATE),
    )
