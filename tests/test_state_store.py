"""Tests for the AquariumStore state container."""

from datetime import timedelta

import pytest

from aquarium_backend.state import AquariumStore
from aquarium_core.events import (
    GameStatsChangedEvent,
    PetCreatedEvent,
    PetDiedEvent,
    PetHealthChangedEvent,
    RestrictionsChangedEvent,
)
from aquarium_core.exceptions import ErrorCode
from aquarium_core.models import AppRestriction, DeathReason, Personality, PetStatus, Theme


@pytest.fixture
def store(clock):
    return AquariumStore(clock)


@pytest.fixture
def events(store):
    """Record every store event by type."""
    seen = []
    for event_type in (
        PetCreatedEvent,
        PetHealthChangedEvent,
        PetDiedEvent,
        RestrictionsChangedEvent,
        GameStatsChangedEvent,
    ):
        store.event_bus.subscribe(event_type, seen.append)
    return seen


class TestPetLifecycle:
    def test_create_pet(self, store, events):
        pet = store.create_pet("Nemo", Personality.CALM).unwrap()
        assert store.current_pet == pet
        assert store.used_names == ("Nemo",)
        assert store.stats.total_pets_raised == 1
        assert any(isinstance(e, PetCreatedEvent) for e in events)

    def test_at_most_one_live_pet(self, store):
        store.create_pet("Nemo", Personality.CALM)
        result = store.create_pet("Dory", Personality.SHY)
        assert result.error.code is ErrorCode.PET_ALREADY_EXISTS
        assert store.current_pet.name == "Nemo"

    def test_health_update_derives_status(self, store, events, clock):
        store.create_pet("Nemo", Personality.CALM)
        clock.advance(hours=2)
        pet = store.update_pet_health(15)
        assert pet.status is PetStatus.CRITICAL
        assert pet.total_lifetime == timedelta(hours=2)
        changed = [e for e in events if isinstance(e, PetHealthChangedEvent)]
        assert changed[-1].previous_health == 100.0

    def test_unchanged_health_emits_nothing(self, store, events):
        store.create_pet("Nemo", Personality.CALM)
        events.clear()
        store.update_pet_health(100)
        store.update_pet_health(250)
        assert events == []

    def test_update_without_pet(self, store):
        assert store.update_pet_health(50) is None

    def test_status_must_match_health(self, store):
        store.create_pet("Nemo", Personality.CALM)
        store.update_pet_health(40)
        assert store.update_pet_status(PetStatus.AT_RISK).is_ok()
        assert store.update_pet_status(PetStatus.ALIVE).error.code is ErrorCode.INVALID_INPUT

    def test_kill_pet_reserves_name(self, store, events, clock):
        store.create_pet("Nemo", Personality.CALM)
        store.update_streak(4)
        clock.advance(days=1)
        dead = store.kill_pet("Video", DeathReason.TIME_LIMIT_EXCEEDED)
        assert dead.total_lifetime == timedelta(days=1)
        assert store.current_pet is None
        assert store.dead_pets == (dead,)
        assert store.stats.total_pet_deaths == 1
        assert store.stats.current_streak == 0
        assert store.stats.longest_streak == 4
        assert store.create_pet("Nemo", Personality.CALM).error.code is ErrorCode.NAME_ALREADY_USED
        assert store.create_pet("Dory", Personality.CALM).is_ok()
        assert store.kill_pet("again", DeathReason.NEGLECT) is not None
        assert [e.dead_pet.name for e in events if isinstance(e, PetDiedEvent)] == ["Nemo", "Dory"]

    def test_kill_without_pet(self, store):
        assert store.kill_pet("none", DeathReason.NEGLECT) is None


class TestRestrictionsAndUsage:
    def test_restrictions(self, store, events, video_restriction):
        chat = AppRestriction(app_id="com.example.chat", package_name="com.example.chat")
        store.set_app_restrictions([video_restriction, chat])
        assert store.toggle_app_restriction("com.example.chat")
        assert store.active_restrictions() == [video_restriction]
        assert store.restriction_limits() == {"com.example.video": timedelta(minutes=30)}
        assert store.update_app_limit("com.example.video", timedelta(minutes=45), timedelta(hours=4))
        assert store.restrictions[0].daily_limit == timedelta(minutes=45)
        assert not store.toggle_app_restriction("missing")
        assert len([e for e in events if isinstance(e, RestrictionsChangedEvent)]) == 3

    def test_usage_cache_change_detection(self, store, make_sample):
        samples = [make_sample(minutes=5), make_sample("com.example.chat", 10)]
        assert store.update_app_usage(samples)
        assert not store.update_app_usage(list(samples))
        assert store.total_usage_time() == timedelta(minutes=15)


class TestGameAndSettings:
    def test_points_and_streaks(self, store):
        store.add_points(10)
        store.add_points(5)
        store.update_streak(3)
        store.update_streak(1)
        assert store.stats.total_points == 15
        assert store.stats.current_streak == 1
        assert store.stats.longest_streak == 3

    def test_settings(self, store):
        settings = store.update_settings(theme=Theme.DARK, sound_enabled=False)
        assert settings.theme is Theme.DARK
        assert not store.settings.sound_enabled
        with pytest.raises(TypeError):
            store.update_settings(volume=3)


class TestSnapshotAndSelectors:
    def test_snapshot_hydrate_round_trip(self, store, clock, video_restriction):
        store.create_pet("Nemo", Personality.CALM)
        store.set_app_restrictions([video_restriction])
        snapshot = store.snapshot()

        other = AquariumStore(clock)
        other.hydrate(snapshot)
        assert other.snapshot() == snapshot

    def test_reset(self, store):
        store.create_pet("Nemo", Personality.CALM)
        store.reset()
        assert store.current_pet is None
        assert store.used_names == ()

    def test_memorial_stats(self, store, clock):
        assert store.memorial_stats().total_pets == 0
        for name, days in (("Nemo", 1), ("Dory", 3)):
            store.create_pet(name, Personality.CALM)
            clock.advance(days=days)
            store.kill_pet("Video", DeathReason.APP_OVERUSE)
        stats = store.memorial_stats()
        assert stats.total_pets == 2
        assert stats.total_lifetime == timedelta(days=4)
        assert stats.average_lifetime == timedelta(days=2)
        assert stats.longest_lived.name == "Dory"
        assert [d.name for d in store.recent_dead_pets(limit=1)] == ["Dory"]
