"""Application state container.

``AquariumStore`` holds the latest simulation outputs for consumers and
applies user intents (create a pet, change a limit). Every mutation that
other components care about is published on the EventBus; the persistence
service subscribes to save the affected slice.

The store never computes simulation results itself. Health comes from
``aquarium_core.health.update_pet_health`` and turbidity from the
Water Quality Manager, both via the composition root.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from aquarium_core.clock import Clock
from aquarium_core.events import (
    EventBus,
    GameStatsChangedEvent,
    PetCreatedEvent,
    PetDiedEvent,
    PetHealthChangedEvent,
    RestrictionsChangedEvent,
    SettingsChangedEvent,
)
from aquarium_core.exceptions import AppError, ErrorCode
from aquarium_core.models import (
    AppRestriction,
    AppSettings,
    AppUsageData,
    AquariumConfig,
    DeadPet,
    DeathReason,
    GameStats,
    Personality,
    Pet,
    PetStatus,
)
from aquarium_core.pets import create_pet, make_dead_pet
from aquarium_core.result import Err, Ok, Result
from aquarium_core.usage import restriction_limits
from aquarium_backend.schema import PersistedState

logger = logging.getLogger(__name__)

RECENT_DEAD_PETS_LIMIT = 10


@dataclass
class AppState:
    """Everything the store holds, grouped by slice."""

    # Pet slice
    current_pet: Optional[Pet] = None
    last_update_time: Optional[datetime] = None
    # Usage slice
    restrictions: List[AppRestriction] = field(default_factory=list)
    current_usage: List[AppUsageData] = field(default_factory=list)
    # Game slice
    stats: GameStats = field(default_factory=GameStats)
    aquarium_config: AquariumConfig = field(default_factory=AquariumConfig)
    # Memorial slice
    dead_pets: List[DeadPet] = field(default_factory=list)
    used_names: List[str] = field(default_factory=list)
    # Settings
    settings: AppSettings = field(default_factory=AppSettings)


@dataclass(frozen=True)
class MemorialStats:
    total_pets: int
    total_lifetime: timedelta
    average_lifetime: timedelta
    longest_lived: Optional[DeadPet]


class AquariumStore:
    """Single mutable store of application state."""

    def __init__(self, clock: Clock, event_bus: Optional[EventBus] = None) -> None:
        self._clock = clock
        self.event_bus = event_bus or EventBus()
        self.state = AppState()

    @property
    def current_pet(self) -> Optional[Pet]:
        return self.state.current_pet

    @property
    def stats(self) -> GameStats:
        return self.state.stats

    @property
    def settings(self) -> AppSettings:
        return self.state.settings

    @property
    def used_names(self) -> Sequence[str]:
        return tuple(self.state.used_names)

    @property
    def dead_pets(self) -> Sequence[DeadPet]:
        return tuple(self.state.dead_pets)

    @property
    def restrictions(self) -> Sequence[AppRestriction]:
        return tuple(self.state.restrictions)

    @property
    def current_usage(self) -> Sequence[AppUsageData]:
        return tuple(self.state.current_usage)

    @property
    def aquarium_config(self) -> AquariumConfig:
        return self.state.aquarium_config

    # ------------------------------------------------------------------
    # Pet actions
    # ------------------------------------------------------------------

    def create_pet(self, name: str, personality: Personality) -> Result[Pet, AppError]:
        now = self._clock.now()
        result = create_pet(
            name,
            personality,
            now,
            used_names=self.state.used_names,
            current_pet=self.state.current_pet,
        )
        if result.is_err():
            logger.warning(f"Pet not created: {result.error}")
            return result

        pet = result.unwrap()
        self.state.current_pet = pet
        self.state.last_update_time = now
        self.state.used_names.append(pet.name)
        self._set_stats(replace(self.state.stats, total_pets_raised=self.state.stats.total_pets_raised + 1))
        logger.info(f"Pet created: {pet.name} ({pet.personality.value})")
        self.event_bus.emit(PetCreatedEvent(pet=pet))
        return Ok(pet)

    def update_pet_health(self, health: float) -> Optional[Pet]:
        """Apply a new health value; status follows health.

        Returns:
            The updated pet, or None when there is no live pet
        """
        pet = self.state.current_pet
        if pet is None:
            return None
        updated = pet.with_health(health)
        if updated.health == pet.health:
            return pet

        now = self._clock.now()
        updated = replace(updated, total_lifetime=now - pet.created_at)
        self.state.current_pet = updated
        self.state.last_update_time = now
        self.event_bus.emit(PetHealthChangedEvent(
            pet=updated, previous_health=pet.health, previous_status=pet.status
        ))
        return updated

    def update_pet_status(self, status: PetStatus) -> Result[None, AppError]:
        """Confirm a status for the live pet.

        Status is derived from health, so only the status matching the
        current health is accepted.
        """
        pet = self.state.current_pet
        if pet is None:
            return Err(AppError(ErrorCode.INVALID_INPUT, "No live pet"))
        expected = PetStatus.from_health(pet.health)
        if status is not expected:
            return Err(AppError(
                ErrorCode.INVALID_INPUT,
                f"Status {status.value} does not match health {pet.health:.1f} ({expected.value})",
            ))
        self.state.last_update_time = self._clock.now()
        return Ok(None)

    def kill_pet(self, cause_of_death: str, death_reason: DeathReason) -> Optional[DeadPet]:
        """Move the live pet to the memorial.

        Returns:
            The memorial record, or None when there was no live pet
        """
        pet = self.state.current_pet
        if pet is None:
            return None

        dead = make_dead_pet(pet, self._clock.now(), cause_of_death, death_reason)
        self.state.dead_pets.append(dead)
        self.state.current_pet = None
        if dead.name not in self.state.used_names:
            self.state.used_names.append(dead.name)
        stats = self.state.stats
        self._set_stats(replace(stats, total_pet_deaths=stats.total_pet_deaths + 1, current_streak=0))
        self.event_bus.emit(PetDiedEvent(dead_pet=dead))
        return dead

    # ------------------------------------------------------------------
    # Usage actions
    # ------------------------------------------------------------------

    def set_app_restrictions(self, restrictions: Sequence[AppRestriction]) -> None:
        self.state.restrictions = list(restrictions)
        logger.info(f"App restrictions updated: {len(restrictions)} apps")
        self._emit_restrictions()

    def update_app_usage(self, usage: Sequence[AppUsageData]) -> bool:
        """Replace the usage cache if it changed. Returns whether it changed."""
        current = self.state.current_usage
        changed = len(usage) != len(current) or any(
            new.package_name != old.package_name or new.daily_usage != old.daily_usage
            for new, old in zip(usage, current)
        )
        if changed:
            self.state.current_usage = list(usage)
            self.state.last_update_time = self._clock.now()
        return changed

    def toggle_app_restriction(self, app_id: str) -> bool:
        for index, restriction in enumerate(self.state.restrictions):
            if restriction.app_id == app_id:
                self.state.restrictions[index] = replace(restriction, is_active=not restriction.is_active)
                self._emit_restrictions()
                return True
        return False

    def update_app_limit(self, app_id: str, daily_limit: timedelta, weekly_limit: timedelta) -> bool:
        for index, restriction in enumerate(self.state.restrictions):
            if restriction.app_id == app_id:
                self.state.restrictions[index] = replace(
                    restriction, daily_limit=daily_limit, weekly_limit=weekly_limit
                )
                self._emit_restrictions()
                return True
        return False

    def _emit_restrictions(self) -> None:
        self.event_bus.emit(RestrictionsChangedEvent(restrictions=tuple(self.state.restrictions)))

    # ------------------------------------------------------------------
    # Game, settings and tank actions
    # ------------------------------------------------------------------

    def add_points(self, points: int) -> None:
        stats = self.state.stats
        self._set_stats(replace(stats, total_points=stats.total_points + points))
        logger.info(f"Points earned: +{points} (total {self.state.stats.total_points})")

    def update_streak(self, days: int) -> None:
        stats = self.state.stats
        self._set_stats(replace(stats, current_streak=days, longest_streak=max(stats.longest_streak, days)))

    def _set_stats(self, stats: GameStats) -> None:
        self.state.stats = stats
        self.event_bus.emit(GameStatsChangedEvent(stats=stats))

    def update_settings(self, **changes: Any) -> AppSettings:
        """Change settings fields by name.

        Raises:
            TypeError: An unknown settings field was given
        """
        known = {f.name for f in fields(AppSettings)}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"Unknown settings: {sorted(unknown)}")
        self.state.settings = replace(self.state.settings, **changes)
        self.event_bus.emit(SettingsChangedEvent(settings=self.state.settings))
        return self.state.settings

    def update_water_quality(self, config: AquariumConfig) -> None:
        """Store the Water Quality Manager's exported state."""
        self.state.aquarium_config = config

    # ------------------------------------------------------------------
    # Whole-state operations
    # ------------------------------------------------------------------

    def hydrate(self, persisted: PersistedState) -> None:
        self.state = AppState(
            current_pet=persisted.current_pet,
            last_update_time=self._clock.now(),
            restrictions=list(persisted.app_restrictions),
            current_usage=list(persisted.current_usage),
            stats=persisted.game_stats,
            aquarium_config=persisted.aquarium_config,
            dead_pets=list(persisted.dead_pets),
            used_names=list(persisted.used_names),
            settings=persisted.app_settings,
        )
        logger.info(
            f"State hydrated: pet={'yes' if persisted.current_pet else 'none'}, "
            f"{len(persisted.dead_pets)} dead pets, {len(persisted.app_restrictions)} restrictions"
        )

    def reset(self) -> None:
        self.state = AppState()
        logger.info("State reset")

    def snapshot(self) -> PersistedState:
        s = self.state
        return PersistedState(
            current_pet=s.current_pet,
            dead_pets=tuple(s.dead_pets),
            used_names=tuple(s.used_names),
            app_restrictions=tuple(s.restrictions),
            current_usage=tuple(s.current_usage),
            game_stats=s.stats,
            aquarium_config=s.aquarium_config,
            app_settings=s.settings,
        )

    # ------------------------------------------------------------------
    # Selectors
    # ------------------------------------------------------------------

    def active_restrictions(self) -> List[AppRestriction]:
        return [r for r in self.state.restrictions if r.is_active]

    def restriction_limits(self) -> Dict[str, timedelta]:
        return restriction_limits(self.state.restrictions)

    def total_usage_time(self) -> timedelta:
        return sum((u.daily_usage for u in self.state.current_usage), timedelta(0))

    def recent_dead_pets(self, limit: int = RECENT_DEAD_PETS_LIMIT) -> List[DeadPet]:
        return sorted(self.state.dead_pets, key=lambda d: d.died_at, reverse=True)[:limit]

    def memorial_stats(self) -> MemorialStats:
        dead_pets = self.state.dead_pets
        if not dead_pets:
            return MemorialStats(0, timedelta(0), timedelta(0), None)
        total = sum((d.total_lifetime for d in dead_pets), timedelta(0))
        return MemorialStats(
            total_pets=len(dead_pets),
            total_lifetime=total,
            average_lifetime=total / len(dead_pets),
            longest_lived=max(dead_pets, key=lambda d: d.total_lifetime),
        )
