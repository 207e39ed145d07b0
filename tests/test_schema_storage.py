"""Tests for the snapshot schema and JSON snapshot storage."""

from datetime import datetime, timedelta

import orjson
import pytest
from pydantic import ValidationError

from aquarium_backend.schema import (
    SCHEMA_VERSION,
    GameStatsRecord,
    PersistedState,
    SnapshotDocument,
    document_from_state,
    pet_to_record,
    state_from_document,
)
from aquarium_backend.storage import SnapshotStore, migrate
from aquarium_core.exceptions import ErrorCode, PersistenceError
from aquarium_core.models import (
    AppSettings,
    AquariumConfig,
    DeathReason,
    GameStats,
    Personality,
    Theme,
)
from aquarium_core.pets import create_pet, make_dead_pet


@pytest.fixture
def store(data_dir, clock):
    return SnapshotStore(data_dir, clock)


@pytest.fixture
def full_state(clock, make_sample, video_restriction):
    now = clock.now()
    pet = create_pet("Nemo", Personality.ACTIVE, now).unwrap().with_health(63.25)
    old = create_pet("Dory", Personality.SHY, now - timedelta(days=3)).unwrap()
    dead = make_dead_pet(old, now - timedelta(days=1), "Video", DeathReason.TIME_LIMIT_EXCEEDED)
    return PersistedState(
        current_pet=pet,
        dead_pets=(dead,),
        used_names=("Dory", "Nemo"),
        app_restrictions=(video_restriction,),
        current_usage=(make_sample(minutes=12.5, app_name="Video"),),
        game_stats=GameStats(total_points=40, current_streak=2, longest_streak=5, total_pets_raised=2),
        aquarium_config=AquariumConfig(
            water_quality=37.5,
            last_update_time=now,
            last_reset_time=datetime(2023, 12, 31),
            decoration_positions=({"decoration_id": "rock", "x": 0.2, "y": 0.7, "rotation": None},),
        ),
        app_settings=AppSettings(theme=Theme.DARK, reminder_interval=30),
    )


class TestSchema:
    def test_round_trip_is_field_for_field_equal(self, full_state, clock):
        document = document_from_state(full_state, last_updated=clock.now())
        reparsed = SnapshotDocument.model_validate_json(orjson.dumps(document.model_dump(mode="json")))
        assert state_from_document(reparsed) == full_state

    def test_durations_stored_as_milliseconds(self, full_state):
        document = document_from_state(full_state)
        assert document.app_restrictions[0].daily_limit == 30 * 60 * 1000
        assert document.current_usage[0].daily_usage == 750_000

    def test_health_out_of_range_rejected(self, full_state):
        record = pet_to_record(full_state.current_pet).model_dump()
        record["health"] = 150
        with pytest.raises(ValidationError):
            SnapshotDocument.model_validate({"current_pet": record})


class TestMigrations:
    def test_v1_document_migrates(self):
        raw = {"migration_version": 1, "aquarium_config": {"water_quality": 40.0}}
        migrated = migrate(raw)
        assert migrated["schema_version"] == SCHEMA_VERSION
        assert "migration_version" not in migrated
        assert migrated["aquarium_config"]["last_reset_time"] is None

    def test_newer_schema_rejected(self):
        with pytest.raises(PersistenceError):
            migrate({"schema_version": SCHEMA_VERSION + 1})


class TestSnapshotStore:
    def test_missing_file_loads_defaults(self, store, clock):
        document = store.load().unwrap()
        assert document.current_pet is None
        assert document.last_updated == clock.now()
        assert not store.path.exists()

    def test_write_then_load(self, store, full_state):
        assert store.write(document_from_state(full_state)).is_ok()
        assert state_from_document(store.load().unwrap()) == full_state

    def test_partial_save_merges(self, store, clock):
        store.save({"used_names": ["Nemo"]})
        clock.advance(minutes=1)
        store.save({"game_stats": GameStatsRecord(total_points=5)})
        document = store.load().unwrap()
        assert document.used_names == ["Nemo"]
        assert document.game_stats.total_points == 5
        assert document.last_updated == clock.now()

    def test_partial_save_rejects_unknown_fields(self, store):
        result = store.save({"fish_count": 3})
        assert result.error.code is ErrorCode.INVALID_INPUT

    def test_v1_file_is_migrated_on_load(self, store, data_dir):
        store.path.write_bytes(orjson.dumps({"migration_version": 1, "used_names": ["Old"]}))
        document = store.load().unwrap()
        assert document.used_names == ["Old"]
        assert orjson.loads(store.path.read_bytes())["schema_version"] == SCHEMA_VERSION

    def test_corrupt_file_is_an_error(self, store):
        store.path.write_bytes(b"{not json")
        result = store.load()
        assert result.is_err()
        assert result.error.code is ErrorCode.STORAGE_ERROR

    def test_reset(self, store, full_state):
        store.write(document_from_state(full_state))
        assert store.reset().is_ok()
        assert store.load().unwrap().current_pet is None

    def test_storage_info(self, store, full_state):
        assert not store.storage_info().unwrap().exists
        store.write(document_from_state(full_state))
        info = store.storage_info().unwrap()
        assert info.exists
        assert info.total_size > 0
        assert info.schema_version == SCHEMA_VERSION


class TestExportImport:
    def test_export_then_import_elsewhere(self, store, full_state, tmp_path, clock):
        store.write(document_from_state(full_state))
        text = store.export_data().unwrap()
        assert orjson.loads(text)["metadata"]["app_version"]

        other = SnapshotStore(tmp_path / "other", clock)
        imported = other.import_data(text).unwrap()
        assert state_from_document(imported) == full_state
        assert state_from_document(other.load().unwrap()) == full_state

    def test_tampered_backup_rejected(self, store, full_state):
        store.write(document_from_state(full_state))
        backup = orjson.loads(store.export_data().unwrap())
        backup["data"]["used_names"].append("Intruder")
        result = store.import_data(orjson.dumps(backup).decode())
        assert result.error.code is ErrorCode.INVALID_INPUT

    def test_garbage_backup_rejected(self, store):
        assert store.import_data("not json").error.code is ErrorCode.INVALID_INPUT
        assert store.import_data("[]").error.code is ErrorCode.INVALID_INPUT
