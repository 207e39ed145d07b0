"""Persisted snapshot schema.

Pydantic models validate everything read from disk or imported by the
user. Durations are stored as integer milliseconds and timestamps as ISO
8601 strings. Conversion helpers map between these records and the engine
dataclasses in ``aquarium_core.models``.

Schema Versioning:
    - Version 1: Original layout, ``migration_version`` key, no water timestamps
    - Version 2: ``schema_version`` key, ``aquarium_config`` carries the water
      manager's ``last_update_time`` / ``last_reset_time``
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from aquarium_core.config.defaults import APP_VERSION
from aquarium_core.config.pet import MAX_HEALTH, MAX_NAME_LENGTH, MIN_HEALTH, MIN_NAME_LENGTH
from aquarium_core.models import (
    AppRestriction,
    AppSettings,
    AppUsageData,
    AquariumConfig,
    DeadPet,
    DeathReason,
    GameStats,
    NotificationType,
    Personality,
    Pet,
    PetStatus,
    Theme,
)

SCHEMA_VERSION = 2


def to_ms(duration: timedelta) -> int:
    return int(round(duration.total_seconds() * 1000))


def from_ms(ms: int) -> timedelta:
    return timedelta(milliseconds=ms)


class PetRecord(BaseModel):
    id: str
    name: str = Field(min_length=MIN_NAME_LENGTH, max_length=MAX_NAME_LENGTH)
    personality: Personality
    created_at: datetime
    health: float = Field(ge=MIN_HEALTH, le=MAX_HEALTH)
    status: PetStatus
    last_feed_time: datetime
    total_lifetime: int = Field(ge=0)  # ms


class DeadPetRecord(BaseModel):
    id: str
    name: str
    personality: Personality
    created_at: datetime
    died_at: datetime
    cause_of_death: str
    total_lifetime: int = Field(ge=0)  # ms
    death_reason: DeathReason


class AppRestrictionRecord(BaseModel):
    app_id: str
    app_name: str = ""
    package_name: str
    daily_limit: int = Field(ge=0)  # ms
    weekly_limit: int = Field(ge=0)  # ms
    is_active: bool = True


class AppUsageRecord(BaseModel):
    app_id: str
    app_name: str = ""
    package_name: str
    daily_usage: int = Field(ge=0)  # ms
    weekly_usage: int = Field(default=0, ge=0)  # ms
    last_used: datetime


class GameStatsRecord(BaseModel):
    total_points: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    total_pets_raised: int = Field(default=0, ge=0)
    total_pet_deaths: int = Field(default=0, ge=0)


class AppSettingsRecord(BaseModel):
    theme: Theme = Theme.LIGHT
    notifications_enabled: bool = True
    notification_type: NotificationType = NotificationType.ALL
    sound_enabled: bool = True
    haptic_feedback_enabled: bool = True
    reminder_interval: int = Field(default=60, ge=1)  # minutes
    language: str = "ko"


class DecorationPositionRecord(BaseModel):
    decoration_id: str
    x: float
    y: float
    rotation: Optional[float] = None


class AquariumConfigRecord(BaseModel):
    water_quality: float = Field(default=100.0, ge=0.0, le=100.0)
    temperature: float = 24.0
    decoration_positions: List[DecorationPositionRecord] = Field(default_factory=list)
    last_update_time: Optional[datetime] = None
    last_reset_time: Optional[datetime] = None


class SnapshotDocument(BaseModel):
    """The whole persisted application state."""

    current_pet: Optional[PetRecord] = None
    dead_pets: List[DeadPetRecord] = Field(default_factory=list)
    used_names: List[str] = Field(default_factory=list)
    app_restrictions: List[AppRestrictionRecord] = Field(default_factory=list)
    current_usage: List[AppUsageRecord] = Field(default_factory=list)
    game_stats: GameStatsRecord = Field(default_factory=GameStatsRecord)
    aquarium_config: AquariumConfigRecord = Field(default_factory=AquariumConfigRecord)
    app_settings: AppSettingsRecord = Field(default_factory=AppSettingsRecord)
    version: str = APP_VERSION
    schema_version: int = SCHEMA_VERSION
    last_updated: datetime = Field(default_factory=datetime.now)


class ExportMetadata(BaseModel):
    exported_at: datetime
    app_version: str


class ExportEnvelope(BaseModel):
    """User-facing backup file: the document plus a checksum of it."""

    data: SnapshotDocument
    metadata: ExportMetadata
    checksum: str


# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------


def pet_to_record(pet: Pet) -> PetRecord:
    return PetRecord(
        id=pet.id,
        name=pet.name,
        personality=pet.personality,
        created_at=pet.created_at,
        health=pet.health,
        status=pet.status,
        last_feed_time=pet.last_feed_time,
        total_lifetime=to_ms(pet.total_lifetime),
    )


def pet_from_record(record: PetRecord) -> Pet:
    return Pet(
        id=record.id,
        name=record.name,
        personality=record.personality,
        health=record.health,
        status=record.status,
        created_at=record.created_at,
        last_feed_time=record.last_feed_time,
        total_lifetime=from_ms(record.total_lifetime),
    )


def dead_pet_to_record(dead: DeadPet) -> DeadPetRecord:
    return DeadPetRecord(
        id=dead.id,
        name=dead.name,
        personality=dead.personality,
        created_at=dead.created_at,
        died_at=dead.died_at,
        cause_of_death=dead.cause_of_death,
        total_lifetime=to_ms(dead.total_lifetime),
        death_reason=dead.death_reason,
    )


def dead_pet_from_record(record: DeadPetRecord) -> DeadPet:
    return DeadPet(
        id=record.id,
        name=record.name,
        personality=record.personality,
        created_at=record.created_at,
        died_at=record.died_at,
        cause_of_death=record.cause_of_death,
        death_reason=record.death_reason,
        total_lifetime=from_ms(record.total_lifetime),
    )


def restriction_to_record(restriction: AppRestriction) -> AppRestrictionRecord:
    return AppRestrictionRecord(
        app_id=restriction.app_id,
        app_name=restriction.app_name,
        package_name=restriction.package_name,
        daily_limit=to_ms(restriction.daily_limit),
        weekly_limit=to_ms(restriction.weekly_limit),
        is_active=restriction.is_active,
    )


def restriction_from_record(record: AppRestrictionRecord) -> AppRestriction:
    return AppRestriction(
        app_id=record.app_id,
        package_name=record.package_name,
        app_name=record.app_name,
        daily_limit=from_ms(record.daily_limit),
        weekly_limit=from_ms(record.weekly_limit),
        is_active=record.is_active,
    )


def usage_to_record(usage: AppUsageData) -> AppUsageRecord:
    return AppUsageRecord(
        app_id=usage.app_id,
        app_name=usage.app_name,
        package_name=usage.package_name,
        daily_usage=to_ms(usage.daily_usage),
        weekly_usage=to_ms(usage.weekly_usage),
        last_used=usage.last_used,
    )


def usage_from_record(record: AppUsageRecord) -> AppUsageData:
    return AppUsageData(
        app_id=record.app_id,
        package_name=record.package_name,
        daily_usage=from_ms(record.daily_usage),
        last_used=record.last_used,
        weekly_usage=from_ms(record.weekly_usage),
        app_name=record.app_name,
    )


def stats_to_record(stats: GameStats) -> GameStatsRecord:
    return GameStatsRecord(
        total_points=stats.total_points,
        current_streak=stats.current_streak,
        longest_streak=stats.longest_streak,
        total_pets_raised=stats.total_pets_raised,
        total_pet_deaths=stats.total_pet_deaths,
    )


def stats_from_record(record: GameStatsRecord) -> GameStats:
    return GameStats(**record.model_dump())


def settings_to_record(settings: AppSettings) -> AppSettingsRecord:
    return AppSettingsRecord(
        theme=settings.theme,
        notifications_enabled=settings.notifications_enabled,
        notification_type=settings.notification_type,
        sound_enabled=settings.sound_enabled,
        haptic_feedback_enabled=settings.haptic_feedback_enabled,
        reminder_interval=settings.reminder_interval,
        language=settings.language,
    )


def settings_from_record(record: AppSettingsRecord) -> AppSettings:
    return AppSettings(**record.model_dump())


def config_to_record(config: AquariumConfig) -> AquariumConfigRecord:
    return AquariumConfigRecord(
        water_quality=config.water_quality,
        temperature=config.temperature,
        decoration_positions=[DecorationPositionRecord(**p) for p in config.decoration_positions],
        last_update_time=config.last_update_time,
        last_reset_time=config.last_reset_time,
    )


def config_from_record(record: AquariumConfigRecord) -> AquariumConfig:
    return AquariumConfig(
        water_quality=record.water_quality,
        temperature=record.temperature,
        last_update_time=record.last_update_time,
        last_reset_time=record.last_reset_time,
        decoration_positions=tuple(p.model_dump() for p in record.decoration_positions),
    )


@dataclass(frozen=True)
class PersistedState:
    """Engine-side view of a snapshot document."""

    current_pet: Optional[Pet] = None
    dead_pets: Tuple[DeadPet, ...] = ()
    used_names: Tuple[str, ...] = ()
    app_restrictions: Tuple[AppRestriction, ...] = ()
    current_usage: Tuple[AppUsageData, ...] = ()
    game_stats: GameStats = field(default_factory=GameStats)
    aquarium_config: AquariumConfig = field(default_factory=AquariumConfig)
    app_settings: AppSettings = field(default_factory=AppSettings)


def document_from_state(state: PersistedState, last_updated: Optional[datetime] = None) -> SnapshotDocument:
    return SnapshotDocument(
        current_pet=pet_to_record(state.current_pet) if state.current_pet else None,
        dead_pets=[dead_pet_to_record(d) for d in state.dead_pets],
        used_names=list(state.used_names),
        app_restrictions=[restriction_to_record(r) for r in state.app_restrictions],
        current_usage=[usage_to_record(u) for u in state.current_usage],
        game_stats=stats_to_record(state.game_stats),
        aquarium_config=config_to_record(state.aquarium_config),
        app_settings=settings_to_record(state.app_settings),
        last_updated=last_updated or datetime.now(),
    )


def state_from_document(document: SnapshotDocument) -> PersistedState:
    return PersistedState(
        current_pet=pet_from_record(document.current_pet) if document.current_pet else None,
        dead_pets=tuple(dead_pet_from_record(d) for d in document.dead_pets),
        used_names=tuple(document.used_names),
        app_restrictions=tuple(restriction_from_record(r) for r in document.app_restrictions),
        current_usage=tuple(usage_from_record(u) for u in document.current_usage),
        game_stats=stats_from_record(document.game_stats),
        aquarium_config=config_from_record(document.aquarium_config),
        app_settings=settings_from_record(document.app_settings),
    )
