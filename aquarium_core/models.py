"""Domain data model for the aquarium.

Identity-bearing records (Pet, DeadPet) and external inputs (usage samples,
restrictions) are frozen dataclasses: updates produce new values via
``dataclasses.replace``. Durations are ``timedelta``; timestamps are naive
local ``datetime`` values.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum

from aquarium_core.config.defaults import (
    DEFAULT_SETTINGS,
    DEFAULT_TEMPERATURE,
    DEFAULT_WATER_QUALITY,
)
from aquarium_core.config.pet import (
    AT_RISK_HEALTH_THRESHOLD,
    CRITICAL_HEALTH_THRESHOLD,
    MAX_HEALTH,
    MIN_HEALTH,
)
from aquarium_core.config.usage import DEFAULT_DAILY_LIMIT, DEFAULT_WEEKLY_LIMIT
from aquarium_core.math_utils import clamp


class PetStatus(Enum):
    """Health band of a pet. Derived from health, never stored independently."""

    ALIVE = "alive"
    AT_RISK = "at_risk"
    CRITICAL = "critical"
    DEAD = "dead"

    @classmethod
    def from_health(cls, health: float) -> "PetStatus":
        if health <= MIN_HEALTH:
            return cls.DEAD
        if health <= CRITICAL_HEALTH_THRESHOLD:
            return cls.CRITICAL
        if health <= AT_RISK_HEALTH_THRESHOLD:
            return cls.AT_RISK
        return cls.ALIVE


class Personality(Enum):
    ACTIVE = "active"
    CALM = "calm"
    PLAYFUL = "playful"
    SHY = "shy"
    CURIOUS = "curious"


class DeathReason(Enum):
    TIME_LIMIT_EXCEEDED = "time_limit_exceeded"
    NEGLECT = "neglect"
    APP_OVERUSE = "app_overuse"


class WaterQualityLevel(Enum):
    CLEAN = "clean"
    MODERATE = "moderate"
    DIRTY = "dirty"
    VERY_DIRTY = "very_dirty"


class MovementPattern(Enum):
    NORMAL = "normal"
    DISTRESSED = "distressed"
    DYING = "dying"
    DEAD = "dead"


class NotificationLevel(Enum):
    NONE = "none"
    WARNING = "warning"
    CRITICAL = "critical"
    DEATH = "death"


class Theme(Enum):
    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


class NotificationType(Enum):
    ALL = "all"
    CRITICAL_ONLY = "critical_only"
    NONE = "none"


@dataclass(frozen=True)
class Pet:
    """The single live pet.

    Attributes:
        id: Stable identifier
        name: Display name, 1-12 characters, unique across all pets ever
        personality: One of the five fixed personalities
        health: 0-100
        status: Health band, always ``PetStatus.from_health(health)``
        created_at: Creation time
        last_feed_time: Last time the pet was cared for
        total_lifetime: Accumulated alive duration
    """

    id: str
    name: str
    personality: Personality
    health: float
    status: PetStatus
    created_at: datetime
    last_feed_time: datetime
    total_lifetime: timedelta = timedelta(0)

    def with_health(self, health: float) -> "Pet":
        """Copy with clamped health and re-derived status."""
        clamped = clamp(health, MIN_HEALTH, MAX_HEALTH)
        return replace(self, health=clamped, status=PetStatus.from_health(clamped))

    @property
    def is_alive(self) -> bool:
        return self.status is not PetStatus.DEAD


@dataclass(frozen=True)
class DeadPet:
    """Memorial record, created once when a live pet's health reaches zero."""

    id: str
    name: str
    personality: Personality
    created_at: datetime
    died_at: datetime
    cause_of_death: str
    death_reason: DeathReason
    total_lifetime: timedelta


@dataclass(frozen=True)
class AppUsageData:
    """One usage sample for one app, as reported by the usage source.

    ``daily_usage`` is a point-in-time cumulative figure for today, not a
    delta since the previous sample.
    """

    app_id: str
    package_name: str
    daily_usage: timedelta
    last_used: datetime
    weekly_usage: timedelta = timedelta(0)
    app_name: str = ""

    @property
    def display_name(self) -> str:
        return self.app_name or self.package_name


@dataclass(frozen=True)
class AppRestriction:
    """Per-app limit configuration."""

    app_id: str
    package_name: str
    app_name: str = ""
    daily_limit: timedelta = DEFAULT_DAILY_LIMIT
    weekly_limit: timedelta = DEFAULT_WEEKLY_LIMIT
    is_active: bool = True


@dataclass(frozen=True)
class GameStats:
    total_points: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    total_pets_raised: int = 0
    total_pet_deaths: int = 0


@dataclass(frozen=True)
class AppSettings:
    theme: Theme = Theme(DEFAULT_SETTINGS["theme"])
    notifications_enabled: bool = DEFAULT_SETTINGS["notifications_enabled"]
    notification_type: NotificationType = NotificationType(DEFAULT_SETTINGS["notification_type"])
    sound_enabled: bool = DEFAULT_SETTINGS["sound_enabled"]
    haptic_feedback_enabled: bool = DEFAULT_SETTINGS["haptic_feedback_enabled"]
    reminder_interval: int = DEFAULT_SETTINGS["reminder_interval"]
    language: str = DEFAULT_SETTINGS["language"]


@dataclass(frozen=True)
class AquariumConfig:
    """Persisted tank state.

    ``water_quality`` holds the Water Quality Manager's turbidity, the
    canonical turbidity value. The timestamps let the manager resume decay
    and the weekly schedule after a restart.
    """

    water_quality: float = DEFAULT_WATER_QUALITY
    temperature: float = DEFAULT_TEMPERATURE
    last_update_time: datetime | None = None
    last_reset_time: datetime | None = None
    decoration_positions: tuple = field(default_factory=tuple)
