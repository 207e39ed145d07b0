"""End-to-end tests for the composition root."""

from datetime import timedelta

import pytest

from aquarium_backend.settings import RuntimeSettings
from aquarium_backend.simulation import AquariumSimulation
from aquarium_backend.usage_service import InMemoryUsageSource
from aquarium_core.exceptions import SimulationError
from aquarium_core.models import DeathReason, MovementPattern, Personality, PetStatus


@pytest.fixture
def settings(data_dir):
    return RuntimeSettings(
        data_dir=data_dir,
        usage_poll_seconds=30.0,
        water_tick_seconds=10.0,
        behavior_tick_seconds=2.0,
        log_level=None,
    )


@pytest.fixture
def source():
    return InMemoryUsageSource()


@pytest.fixture
def make_simulation(settings, clock, scheduler, seeded_rng, source):
    def _make():
        return AquariumSimulation(
            settings, clock=clock, scheduler=scheduler, rng=seeded_rng, usage_source=source
        )

    return _make


@pytest.fixture
def simulation(make_simulation, video_restriction):
    sim = make_simulation()
    sim.store.set_app_restrictions([video_restriction])
    return sim


class TestHealthTicks:
    def test_capped_decay_applied_once(self, simulation, make_sample):
        """Double the daily limit costs 2 health once, however long use continues."""
        simulation.new_pet("Nemo", Personality.CALM)

        update = simulation.process_usage([make_sample(minutes=60)])
        assert update.health == pytest.approx(98.0)

        for minutes in (60, 90, 300):
            simulation.process_usage([make_sample(minutes=minutes)])
        assert simulation.store.current_pet.health == pytest.approx(98.0)

    def test_growth_below_cap_is_charged(self, simulation, make_sample):
        simulation.new_pet("Nemo", Personality.CALM)
        simulation.process_usage([make_sample(minutes=15)])
        simulation.process_usage([make_sample(minutes=30)])
        assert simulation.store.current_pet.health == pytest.approx(99.0)

    def test_offline_time_restores_health(self, simulation, clock):
        simulation.new_pet("Nemo", Personality.CALM)
        simulation.store.update_pet_health(50)
        clock.advance(minutes=10)
        update = simulation.process_usage([])
        # +5 restored, -1 natural decay
        assert update.health == pytest.approx(54.0)
        assert update.status is PetStatus.ALIVE

    def test_no_pet_no_update(self, simulation, make_sample):
        assert simulation.process_usage([make_sample(minutes=10)]) is None
        assert simulation.store.current_usage[0].daily_usage == timedelta(minutes=10)


class TestDeath:
    def test_pet_dies_exactly_once(self, simulation, make_sample):
        simulation.new_pet("Nemo", Personality.CALM)
        simulation.store.update_pet_health(1.5)

        simulation.process_usage([make_sample(minutes=60, app_name="Video")])
        simulation.process_usage([make_sample(minutes=120, app_name="Video")])

        dead_pets = simulation.store.dead_pets
        assert len(dead_pets) == 1
        assert dead_pets[0].cause_of_death == "Video"
        assert dead_pets[0].death_reason is DeathReason.TIME_LIMIT_EXCEEDED
        assert simulation.store.current_pet is None
        assert simulation.store.stats.total_pet_deaths == 1
        assert simulation.fish.get_current_behavior_state().is_dead

    def test_new_pet_after_death(self, simulation, make_sample):
        simulation.new_pet("Nemo", Personality.CALM)
        simulation.store.update_pet_health(1)
        simulation.process_usage([make_sample(minutes=60)])

        assert simulation.new_pet("Nemo", Personality.CALM).is_err()
        pet = simulation.new_pet("Dory", Personality.ACTIVE).unwrap()
        assert pet.health == 100.0
        assert not simulation.fish.get_current_behavior_state().is_dead


class TestTank:
    def test_water_state_mirrored_into_store(self, simulation, clock, make_sample):
        simulation.water.set_turbidity(10)
        clock.advance(minutes=2)
        simulation.process_usage([make_sample(minutes=1)])
        assert simulation.store.aquarium_config.water_quality == pytest.approx(12.0)
        assert simulation.store.aquarium_config.last_update_time == clock.now()

    def test_dirty_water_distresses_fish(self, simulation):
        simulation.new_pet("Nemo", Personality.CALM)
        simulation.water.set_turbidity(60)
        simulation.process_usage([])
        state = simulation.fish.get_current_behavior_state()
        assert state.is_distressed
        assert state.movement_pattern is MovementPattern.DISTRESSED

    def test_change_water(self, simulation):
        simulation.water.set_turbidity(30)
        info = simulation.change_water()
        assert info.turbidity == 100.0
        assert simulation.store.aquarium_config.water_quality == 100.0


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_stop_and_restore(self, make_simulation, scheduler, video_restriction):
        sim = make_simulation()
        await sim.start()
        assert sim.is_running
        assert sim.water.is_monitoring()
        assert sim.fish.is_monitoring()
        assert sim.usage.is_monitoring()
        with pytest.raises(SimulationError):
            await sim.start()

        sim.store.set_app_restrictions([video_restriction])
        assert len(sim.usage.restricted_apps) == 1
        sim.new_pet("Nemo", Personality.SHY)
        scheduler.advance(20)
        turbidity = sim.water.turbidity
        assert turbidity < 100.0
        assert sim.store.aquarium_config.water_quality == turbidity

        await sim.stop()
        await sim.stop()
        assert not sim.water.is_monitoring()
        assert not sim.fish.is_monitoring()
        assert not sim.usage.is_monitoring()

        restarted = make_simulation()
        await restarted.start()
        assert restarted.store.current_pet.name == "Nemo"
        assert restarted.water.turbidity == pytest.approx(turbidity)
        assert [r.app_id for r in restarted.store.restrictions] == ["com.example.video"]
        await restarted.stop()

    @pytest.mark.asyncio
    async def test_failing_tick_does_not_abort_start(self, make_simulation):
        sim = make_simulation()

        def failing(samples):
            raise RuntimeError("tick failed")

        sim.process_usage = failing
        await sim.start()
        assert sim.is_running
        assert sim.usage.is_monitoring()
        await sim.stop()
        assert not sim.water.is_monitoring()
