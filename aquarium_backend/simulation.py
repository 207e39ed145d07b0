"""Composition root for the aquarium simulation.

``AquariumSimulation`` constructs one of each manager and service, wires
their outputs into the store and passes data between them. The managers
never reference each other:

    usage service --samples--> process_usage
        -> health (store) -> death check
        -> water quality manager -> store.aquarium_config
        -> fish behavior manager

Water self-ticks also refresh the store and the fish, so the tank keeps
clearing while no usage is being reported.
"""

from __future__ import annotations

import logging
import random
from typing import Optional, Sequence

from aquarium_core.clock import Clock, SystemClock, minutes_between
from aquarium_core.config.pet import MIN_HEALTH
from aquarium_core.events import RestrictionsChangedEvent
from aquarium_core.exceptions import AppError, SimulationError
from aquarium_core.fish_behavior import FishBehaviorManager, FishBehaviorState
from aquarium_core.health import HealthUpdate, update_pet_health
from aquarium_core.models import AppUsageData, DeadPet, Personality, Pet
from aquarium_core.pets import infer_death_reason
from aquarium_core.result import Result
from aquarium_core.scheduling import AsyncioScheduler, Scheduler
from aquarium_core.usage import UsageDamageLedger, UsageDeltaTracker, most_used_app
from aquarium_core.water_quality import WaterQualityInfo, WaterQualityManager
from aquarium_backend.persistence_service import DataPersistenceService
from aquarium_backend.settings import RuntimeSettings
from aquarium_backend.state import AquariumStore
from aquarium_backend.storage import SnapshotStore
from aquarium_backend.usage_service import AppUsageService, InMemoryUsageSource, UsageSource

logger = logging.getLogger(__name__)


class AquariumSimulation:
    """Owns and connects every simulation component.

    Args:
        settings: Runtime settings (defaults to the environment)
        clock: Time source (defaults to the system clock)
        scheduler: Interval scheduler (defaults to the asyncio scheduler)
        rng: Random source for fish motion
        usage_source: Platform usage bridge; without one, usage is fed by
            hand through an ``InMemoryUsageSource``
    """

    def __init__(
        self,
        settings: Optional[RuntimeSettings] = None,
        *,
        clock: Optional[Clock] = None,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[random.Random] = None,
        usage_source: Optional[UsageSource] = None,
    ) -> None:
        self.settings = settings or RuntimeSettings.from_env()
        self.clock = clock or SystemClock()
        self.scheduler = scheduler or AsyncioScheduler()

        self.store = AquariumStore(self.clock)
        self.snapshot_store = SnapshotStore(self.settings.data_dir, self.clock)
        self.persistence = DataPersistenceService(self.store, self.snapshot_store)
        self.water = WaterQualityManager(
            self.clock, self.scheduler, update_interval=self.settings.water_tick_seconds
        )
        self.fish = FishBehaviorManager(
            self.clock, self.scheduler, rng=rng, position_interval=self.settings.behavior_tick_seconds
        )
        self.usage = AppUsageService(
            usage_source if usage_source is not None else InMemoryUsageSource(),
            self.clock,
            self.scheduler,
            poll_interval=self.settings.usage_poll_seconds,
        )

        self._usage_tracker = UsageDeltaTracker()
        self._damage_ledger = UsageDamageLedger()
        self._last_tick = self.clock.now()
        self._running = False
        self.last_health_update: Optional[HealthUpdate] = None
        self.latest_behavior: FishBehaviorState = self.fish.get_current_behavior_state()

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Restore saved state and start every monitor.

        Raises:
            SimulationError: The simulation is already running
        """
        if self._running:
            raise SimulationError("Simulation already running")

        logger.info("Starting aquarium simulation")
        await self.persistence.initialize()
        self.water.restore_state(self.store.aquarium_config)
        self._last_tick = self.clock.now()

        self.water.start_monitoring(self._on_water_update)
        self.fish.update_behavior(self.water.get_current_water_quality(), self.store.current_pet)
        self.fish.start_behavior_monitoring(self._on_behavior_update)
        self.store.event_bus.subscribe(RestrictionsChangedEvent, self._on_restrictions_changed)
        self._running = True

        await self.usage.start_monitoring(self.store.active_restrictions(), self.process_usage)
        logger.info("Aquarium simulation started")

    async def stop(self) -> None:
        """Stop every monitor and write the final snapshot. Idempotent."""
        if not self._running:
            return
        self._running = False

        self.usage.stop_monitoring()
        self.fish.stop_behavior_monitoring()
        self.water.stop_monitoring()
        self.store.event_bus.unsubscribe(RestrictionsChangedEvent, self._on_restrictions_changed)
        self.store.update_water_quality(self.water.export_state(self.store.aquarium_config))
        if isinstance(self.scheduler, AsyncioScheduler):
            self.scheduler.cancel_all()

        await self.persistence.on_app_terminate()
        logger.info("Aquarium simulation stopped")

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    def process_usage(self, samples: Sequence[AppUsageData]) -> Optional[HealthUpdate]:
        """Run one simulation tick for freshly observed usage samples.

        Returns:
            The health update applied to the live pet, or None without one
        """
        samples = list(samples)
        now = self.clock.now()
        self.store.update_app_usage(samples)

        elapsed = max(0.0, minutes_between(self._last_tick, now))
        used = self._usage_tracker.total_minutes(samples, self._last_tick, now)
        offline = max(0.0, elapsed - used)
        self._last_tick = now

        limits = self.store.restriction_limits()
        usage_damage = self._damage_ledger.charge(samples, limits)

        update: Optional[HealthUpdate] = None
        pet = self.store.current_pet
        if pet is not None:
            update = update_pet_health(pet.health, samples, limits, elapsed, offline, usage_damage=usage_damage)
            self.store.update_pet_health(update.health)
            self.last_health_update = update
            logger.debug(
                f"Tick: {elapsed:.2f} min elapsed, {used:.2f} min used, "
                f"damage {usage_damage:.2f}, health {update.health:.1f}"
            )
            if update.health <= MIN_HEALTH:
                self._handle_death(samples)

        self.water.update_turbidity(samples)
        self._sync_tank()
        return update

    def _handle_death(self, samples: Sequence[AppUsageData]) -> Optional[DeadPet]:
        reason = infer_death_reason(samples, self.store.active_restrictions())
        cause = most_used_app(samples) or reason.value
        return self.store.kill_pet(cause, reason)

    def _sync_tank(self) -> None:
        self.store.update_water_quality(self.water.export_state(self.store.aquarium_config))
        self.fish.update_behavior(self.water.get_current_water_quality(), self.store.current_pet)

    def _on_water_update(self, info: WaterQualityInfo) -> None:
        self.store.update_water_quality(self.water.export_state(self.store.aquarium_config))
        self.fish.update_behavior(info, self.store.current_pet)

    def _on_behavior_update(self, state: FishBehaviorState) -> None:
        self.latest_behavior = state

    def _on_restrictions_changed(self, event: RestrictionsChangedEvent) -> None:
        self.usage.update_restrictions([r for r in event.restrictions if r.is_active])

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def new_pet(self, name: str, personality: Personality) -> Result[Pet, AppError]:
        """Create the live pet and put a fresh fish in the tank."""
        result = self.store.create_pet(name, personality)
        if result.is_ok():
            self.fish.reset_behavior_state()
            self.fish.update_behavior(self.water.get_current_water_quality(), result.unwrap())
        return result

    def change_water(self) -> WaterQualityInfo:
        """Manual water change."""
        self.water.perform_manual_water_change()
        self._sync_tank()
        return self.water.get_current_water_quality()
