"""Tests for the data persistence service."""

import asyncio

import pytest

from aquarium_backend import persistence_service
from aquarium_backend.persistence_service import DataPersistenceService
from aquarium_backend.state import AquariumStore
from aquarium_backend.storage import SnapshotStore
from aquarium_core.models import DeathReason, Personality, Theme


@pytest.fixture(autouse=True)
def fast_debounce(monkeypatch):
    """Shrink debounce delays so tests do not wait seconds."""
    monkeypatch.setattr(persistence_service, "PET_SAVE_DELAY", 0.01)
    monkeypatch.setattr(persistence_service, "SETTINGS_SAVE_DELAY", 0.01)
    monkeypatch.setattr(persistence_service, "GAME_STATS_SAVE_DELAY", 0.01)


@pytest.fixture
def snapshot_store(data_dir, clock):
    return SnapshotStore(data_dir, clock)


@pytest.fixture
def store(clock):
    return AquariumStore(clock)


@pytest.fixture
def service(store, snapshot_store):
    return DataPersistenceService(store, snapshot_store)


def count_calls(monkeypatch, target, name):
    """Wrap ``target.name`` and return the list its calls are recorded in."""
    calls = []
    original = getattr(target, name)

    def wrapper(*args, **kwargs):
        calls.append(args)
        return original(*args, **kwargs)

    monkeypatch.setattr(target, name, wrapper)
    return calls


class TestInitialize:
    @pytest.mark.asyncio
    async def test_fresh_install_uses_defaults(self, service, store):
        assert await service.initialize()
        assert service.is_initialized
        assert store.current_pet is None

    @pytest.mark.asyncio
    async def test_corrupt_snapshot_falls_back_to_defaults(self, service, store, snapshot_store):
        snapshot_store.path.write_bytes(b"\x00garbage")
        store.create_pet("Nemo", Personality.CALM)
        assert not await service.initialize()
        assert store.current_pet is None

    @pytest.mark.asyncio
    async def test_restores_saved_state(self, service, store, snapshot_store, clock):
        store.create_pet("Nemo", Personality.CALM)
        assert await service.save_all()

        restored = AquariumStore(clock)
        assert await DataPersistenceService(restored, snapshot_store).initialize()
        assert restored.current_pet.name == "Nemo"
        assert restored.used_names == ("Nemo",)


class TestSaveAll:
    @pytest.mark.asyncio
    async def test_concurrent_full_save_refused(self, service, store):
        await service.initialize()
        store.create_pet("Nemo", Personality.CALM)
        first, second = await asyncio.gather(service.save_all(), service.save_all())
        assert first is True
        assert second is False
        assert not service.is_saving

    @pytest.mark.asyncio
    async def test_unchanged_state_not_rewritten(self, service, store, snapshot_store, monkeypatch):
        await service.initialize()
        writes = count_calls(monkeypatch, snapshot_store, "write")
        store.add_points(5)
        assert await service.save_all()
        assert await service.save_all()
        assert len(writes) == 1


class TestAutoSave:
    @pytest.mark.asyncio
    async def test_health_ticks_debounced_into_one_save(self, service, store, snapshot_store, monkeypatch):
        await service.initialize()
        saves = count_calls(monkeypatch, snapshot_store, "save")
        store.create_pet("Nemo", Personality.CALM)
        for health in (99, 98, 97, 96):
            store.update_pet_health(health)
        await asyncio.sleep(0.05)
        await service.shutdown()

        pet_saves = [args for args in saves if "current_pet" in args[0]]
        assert len(pet_saves) == 1
        assert snapshot_store.load().unwrap().current_pet.health == 96

    @pytest.mark.asyncio
    async def test_death_saved_immediately(self, service, store, snapshot_store):
        await service.initialize()
        store.create_pet("Nemo", Personality.CALM)
        store.kill_pet("Video", DeathReason.TIME_LIMIT_EXCEEDED)
        await service.shutdown()

        document = snapshot_store.load().unwrap()
        assert document.current_pet is None
        assert [d.name for d in document.dead_pets] == ["Nemo"]
        assert document.used_names == ["Nemo"]

    @pytest.mark.asyncio
    async def test_settings_and_restrictions_saved(self, service, store, snapshot_store, video_restriction):
        await service.initialize()
        store.update_settings(theme=Theme.DARK)
        store.set_app_restrictions([video_restriction])
        await asyncio.sleep(0.05)
        await service.shutdown()

        document = snapshot_store.load().unwrap()
        assert document.app_settings.theme is Theme.DARK
        assert [r.app_id for r in document.app_restrictions] == ["com.example.video"]

    @pytest.mark.asyncio
    async def test_save_before_initialize_is_skipped(self, service, snapshot_store):
        service.save_pet()
        await service.shutdown()
        assert not snapshot_store.path.exists()


class TestBackupAndReset:
    @pytest.mark.asyncio
    async def test_export_import_round_trip(self, service, store, snapshot_store, tmp_path, clock):
        await service.initialize()
        store.create_pet("Nemo", Personality.CALM)
        await service.save_all()
        backup = await service.export_data()

        other_store = AquariumStore(clock)
        other = DataPersistenceService(other_store, SnapshotStore(tmp_path / "other", clock))
        await other.initialize()
        assert await other.import_data(backup)
        assert other_store.current_pet.name == "Nemo"
        assert not await other.import_data("{}")

    @pytest.mark.asyncio
    async def test_reset_all(self, service, store, snapshot_store):
        await service.initialize()
        store.create_pet("Nemo", Personality.CALM)
        await service.save_all()
        assert await service.reset_all()
        assert store.current_pet is None
        assert snapshot_store.load().unwrap().current_pet is None
        info = await service.storage_info()
        assert info.exists

    @pytest.mark.asyncio
    async def test_lifecycle_hooks_save(self, service, store, snapshot_store):
        await service.initialize()
        store.create_pet("Nemo", Personality.CALM)
        await service.on_app_background()
        assert snapshot_store.load().unwrap().current_pet.name == "Nemo"
        await service.on_app_foreground()
        store.update_pet_health(50)
        await service.on_app_terminate()
        assert snapshot_store.load().unwrap().current_pet.health == 50
