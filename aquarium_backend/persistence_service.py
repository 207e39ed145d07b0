"""Data persistence service.

Keeps the snapshot file in step with the store:

- ``initialize()`` loads the snapshot into the store (defaults on failure)
  and subscribes to store events for auto-save.
- Pet, settings and game-stats changes are saved after a per-slice quiet
  period (debounce), so a burst of health ticks becomes one write.
- Deaths and restriction changes are saved immediately.
- ``save_all()`` writes everything and is awaited by the caller. At most one
  full save runs at a time; a concurrent call returns False without
  writing. An unchanged state since the last full save is skipped.

File I/O runs in the default executor so the event loop never blocks.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from typing import Any, Callable, Dict, Optional, Set

import orjson

from aquarium_core.events import (
    GameStatsChangedEvent,
    PetCreatedEvent,
    PetDiedEvent,
    PetHealthChangedEvent,
    RestrictionsChangedEvent,
    SettingsChangedEvent,
)
from aquarium_core.models import DeadPet
from aquarium_core.result import Result
from aquarium_backend.schema import (
    PersistedState,
    dead_pet_to_record,
    document_from_state,
    pet_to_record,
    restriction_to_record,
    settings_to_record,
    state_from_document,
    stats_to_record,
)
from aquarium_backend.state import AquariumStore
from aquarium_backend.storage import SnapshotStore, StorageInfo

logger = logging.getLogger(__name__)

# Debounce delays (seconds)
PET_SAVE_DELAY = 1.0
SETTINGS_SAVE_DELAY = 0.5
GAME_STATS_SAVE_DELAY = 2.0


def state_hash(state: PersistedState) -> str:
    """Digest of the persisted state, used to skip redundant full saves."""
    document = document_from_state(state)
    payload = document.model_dump(mode="json", exclude={"last_updated"})
    return hashlib.sha256(orjson.dumps(payload, option=orjson.OPT_SORT_KEYS)).hexdigest()


class DataPersistenceService:
    """Bridges ``AquariumStore`` and ``SnapshotStore``."""

    def __init__(self, store: AquariumStore, snapshot_store: SnapshotStore) -> None:
        self._store = store
        self._snapshot_store = snapshot_store
        self._initialized = False
        self._is_saving = False
        self._last_saved_hash: Optional[str] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._debounce_handles: Dict[str, asyncio.TimerHandle] = {}
        self._pending: Set[asyncio.Task] = set()
        # Serializes read-merge-write cycles on the snapshot file
        self._write_lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def is_saving(self) -> bool:
        return self._is_saving

    async def _run_io(self, func: Callable[..., Any], *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> bool:
        """Restore the store from disk and start auto-saving.

        Returns:
            True if stored (or default) data was loaded, False if the stored
            data was unreadable and the store was reset to defaults
        """
        if self._initialized:
            return True

        self._loop = asyncio.get_running_loop()
        logger.info("Persistence service initializing")
        restored = await self._restore()
        self._subscribe()
        self._initialized = True
        logger.info("Persistence service initialized")
        return restored

    async def _restore(self) -> bool:
        result = await self._run_io(self._snapshot_store.load)
        if result.is_err():
            logger.warning(f"Stored data missing or corrupt, using defaults: {result.error}")
            self._store.reset()
            return False
        persisted = state_from_document(result.unwrap())
        self._store.hydrate(persisted)
        self._last_saved_hash = state_hash(persisted)
        return True

    def _subscribe(self) -> None:
        bus = self._store.event_bus
        bus.subscribe(PetCreatedEvent, lambda _: self.save_pet())
        bus.subscribe(PetHealthChangedEvent, lambda _: self.save_pet())
        bus.subscribe(SettingsChangedEvent, lambda _: self.save_settings())
        bus.subscribe(GameStatsChangedEvent, lambda _: self.save_game_stats())
        bus.subscribe(PetDiedEvent, lambda event: self._spawn(self.add_dead_pet(event.dead_pet)))
        bus.subscribe(RestrictionsChangedEvent, lambda _: self._spawn(self.save_app_restrictions()))

    async def shutdown(self) -> None:
        """Cancel pending debounced saves and wait for in-flight writes."""
        for handle in self._debounce_handles.values():
            handle.cancel()
        self._debounce_handles.clear()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Debounced saves
    # ------------------------------------------------------------------

    def save_pet(self) -> None:
        self._debounce("pet", PET_SAVE_DELAY, self._save_pet_now)

    def save_settings(self) -> None:
        self._debounce("settings", SETTINGS_SAVE_DELAY, self._save_settings_now)

    def save_game_stats(self) -> None:
        self._debounce("game_stats", GAME_STATS_SAVE_DELAY, self._save_game_stats_now)

    def _debounce(self, key: str, delay: float, save: Callable[[], Any]) -> None:
        if self._loop is None:
            logger.warning(f"Save of {key} requested before initialize(); skipped")
            return
        previous = self._debounce_handles.pop(key, None)
        if previous is not None:
            previous.cancel()
        self._debounce_handles[key] = self._loop.call_later(delay, self._fire_debounced, key, save)

    def _fire_debounced(self, key: str, save: Callable[[], Any]) -> None:
        self._debounce_handles.pop(key, None)
        self._spawn(save())

    def _spawn(self, coro: Any) -> None:
        if self._loop is None:
            coro.close()
            logger.warning("Save requested before initialize(); skipped")
            return
        task = self._loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _save_fields(self, label: str, partial: Dict[str, Any]) -> bool:
        async with self._write_lock:
            result: Result = await self._run_io(self._snapshot_store.save, partial)
        if result.is_err():
            logger.error(f"Failed to save {label}: {result.error}")
            return False
        logger.debug(f"Saved {label}")
        return True

    async def _save_pet_now(self) -> bool:
        pet = self._store.current_pet
        return await self._save_fields(
            "pet",
            {
                "current_pet": pet_to_record(pet) if pet else None,
                "used_names": list(self._store.used_names),
            },
        )

    async def _save_settings_now(self) -> bool:
        return await self._save_fields("settings", {"app_settings": settings_to_record(self._store.settings)})

    async def _save_game_stats_now(self) -> bool:
        return await self._save_fields("game stats", {"game_stats": stats_to_record(self._store.stats)})

    # ------------------------------------------------------------------
    # Immediate saves
    # ------------------------------------------------------------------

    async def add_dead_pet(self, dead_pet: DeadPet) -> bool:
        """Persist a death: memorial record, reserved name, no live pet."""
        pending = self._debounce_handles.pop("pet", None)
        if pending is not None:
            pending.cancel()
        saved = await self._save_fields(
            f"dead pet {dead_pet.name}",
            {
                "dead_pets": [dead_pet_to_record(d) for d in self._store.dead_pets],
                "used_names": list(self._store.used_names),
                "current_pet": None,
            },
        )
        if saved:
            logger.info(f"Dead pet saved: {dead_pet.name}")
        return saved

    async def save_app_restrictions(self) -> bool:
        return await self._save_fields(
            "app restrictions",
            {"app_restrictions": [restriction_to_record(r) for r in self._store.restrictions]},
        )

    async def save_all(self) -> bool:
        """Write the whole store and wait for it.

        Returns:
            True when saved or already up to date, False when another full
            save is in flight or the write failed
        """
        if self._is_saving:
            logger.warning("Full save already in progress")
            return False

        self._is_saving = True
        try:
            persisted = self._store.snapshot()
            digest = state_hash(persisted)
            if digest == self._last_saved_hash:
                logger.debug("State unchanged since last full save, skipping")
                return True

            document = document_from_state(persisted)
            async with self._write_lock:
                result = await self._run_io(self._snapshot_store.write, document)
            if result.is_err():
                logger.error(f"Full save failed: {result.error}")
                return False
            self._last_saved_hash = digest
            logger.info("Full save completed")
            return True
        finally:
            self._is_saving = False

    # ------------------------------------------------------------------
    # Backup and reset
    # ------------------------------------------------------------------

    async def export_data(self) -> Optional[str]:
        result = await self._run_io(self._snapshot_store.export_data)
        if result.is_err():
            logger.error(f"Export failed: {result.error}")
            return None
        logger.info("Data exported")
        return result.unwrap()

    async def import_data(self, text: str) -> bool:
        async with self._write_lock:
            result = await self._run_io(self._snapshot_store.import_data, text)
        if result.is_err():
            logger.error(f"Import failed: {result.error}")
            return False
        persisted = state_from_document(result.unwrap())
        self._store.hydrate(persisted)
        self._last_saved_hash = state_hash(persisted)
        logger.info("Data imported")
        return True

    async def reset_all(self) -> bool:
        async with self._write_lock:
            result = await self._run_io(self._snapshot_store.reset)
        if result.is_err():
            logger.error(f"Reset failed: {result.error}")
            return False
        self._store.reset()
        self._last_saved_hash = None
        logger.info("All data reset")
        return True

    async def storage_info(self) -> Optional[StorageInfo]:
        result = await self._run_io(self._snapshot_store.storage_info)
        if result.is_err():
            logger.error(f"Storage info failed: {result.error}")
            return None
        return result.unwrap()

    # ------------------------------------------------------------------
    # App lifecycle hooks
    # ------------------------------------------------------------------

    async def on_app_background(self) -> None:
        logger.info("App moved to background, saving")
        await self.save_all()

    async def on_app_foreground(self) -> None:
        logger.info("App returned to foreground")

    async def on_app_terminate(self) -> None:
        logger.info("App terminating, final save")
        await self.shutdown()
        await self.save_all()
